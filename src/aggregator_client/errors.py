"""
Exception hierarchy for the aggregator client

Local precondition failures, transport failures, HTTP failures, logical
errors reported by the service and malformed responses are kept apart so
callers can decide what is safe to retry.
"""

from typing import Any, List, Mapping, Optional


class AggregatorError(Exception):
    """Base exception for the aggregator client"""


class ValidationError(AggregatorError):
    """Raised when a request or paginator is constructed with invalid values"""


class AuthRequiredError(AggregatorError):
    """Raised when an authenticated endpoint is called without a credential"""


class CredentialExpiredError(AggregatorError):
    """Raised when a bearer token has expired before dispatch"""


class TransportFailure(AggregatorError):
    """Raised on network-level failures. Safe for the caller to retry."""

    def __init__(self, message: str, *, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


class TransportTimeout(TransportFailure, TimeoutError):
    """Raised when the transport call exceeds the configured timeout"""


class ConnectionRefused(TransportFailure):
    """Raised when the remote host refuses the connection"""


class DNSFailure(TransportFailure):
    """Raised when the remote host name cannot be resolved"""


class HttpFailure(AggregatorError):
    """Raised on non-2xx responses. The status code is kept verbatim."""

    def __init__(self, status_code: int, raw_body: str = "", url: Optional[str] = None,
                 headers: Optional[Mapping[str, str]] = None):
        super().__init__(f"HTTP {status_code} from {url or 'remote service'}")
        self.status_code = status_code
        self.raw_body = raw_body
        self.url = url
        self.headers = dict(headers or {})


class ApiFailure(AggregatorError):
    """Raised when the service reports a logical error inside a 2xx response"""

    def __init__(self, error_code: str, message: str, field: Optional[str] = None,
                 errors: Optional[List[List[Any]]] = None):
        super().__init__(f"{error_code}: {message}")
        self.error_code = error_code
        self.message = message
        self.field = field
        self.errors = errors or [[error_code, message, field]]


class MalformedResponseError(AggregatorError):
    """Raised when a response body cannot be parsed into the expected shape"""


class MalformedListingError(MalformedResponseError):
    """Raised when a body does not match the paginated listing envelope"""


class EndOfStreamError(AggregatorError):
    """Raised when a paginator is asked for a page past exhaustion"""
