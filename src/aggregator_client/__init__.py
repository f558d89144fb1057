"""
Client package for a content-aggregation service
Provides authenticated, rate-limited request dispatch and cursor pagination over listings
"""

from .errors import (
    AggregatorError,
    ValidationError,
    AuthRequiredError,
    CredentialExpiredError,
    TransportFailure,
    TransportTimeout,
    ConnectionRefused,
    DNSFailure,
    HttpFailure,
    ApiFailure,
    MalformedResponseError,
    MalformedListingError,
    EndOfStreamError,
)
from .request_builder import HttpMethod, ResponseFormat, RequestDescriptor, RequestBuilder, new_request
from .credentials import BasicAuth, BearerToken, Credential
from .rate_limiter import RateLimiter, shared_rate_limiter
from .dispatcher import Dispatcher, APIResponse
from .listing import ListingDecoder, Page
from .paginator import (
    Paginator,
    PaginatorFactory,
    ListingEndpoint,
    Direction,
    NotStarted,
    Active,
    Exhausted,
    DEFAULT_LIMIT,
    RECOMMENDED_MAX_LIMIT,
)
from .managers import InboxManager, AccountManager, AccountPreferencesEditor, SubmissionBuilder, VoteDirection
from .retry import retry_with_backoff
from .config_loader import ConfigLoader, ClientConfig, ConfigurationError, EnvironmentVariableError, configure_logging
from .client import AggregatorClient

__all__ = [
    'AggregatorError',
    'ValidationError',
    'AuthRequiredError',
    'CredentialExpiredError',
    'TransportFailure',
    'TransportTimeout',
    'ConnectionRefused',
    'DNSFailure',
    'HttpFailure',
    'ApiFailure',
    'MalformedResponseError',
    'MalformedListingError',
    'EndOfStreamError',
    'HttpMethod',
    'ResponseFormat',
    'RequestDescriptor',
    'RequestBuilder',
    'new_request',
    'BasicAuth',
    'BearerToken',
    'Credential',
    'RateLimiter',
    'shared_rate_limiter',
    'Dispatcher',
    'APIResponse',
    'ListingDecoder',
    'Page',
    'Paginator',
    'PaginatorFactory',
    'ListingEndpoint',
    'Direction',
    'NotStarted',
    'Active',
    'Exhausted',
    'DEFAULT_LIMIT',
    'RECOMMENDED_MAX_LIMIT',
    'InboxManager',
    'AccountManager',
    'AccountPreferencesEditor',
    'SubmissionBuilder',
    'VoteDirection',
    'retry_with_backoff',
    'ConfigLoader',
    'ClientConfig',
    'ConfigurationError',
    'EnvironmentVariableError',
    'configure_logging',
    'AggregatorClient',
]
