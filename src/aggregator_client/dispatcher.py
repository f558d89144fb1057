"""
Dispatcher module for executing request descriptors against the service

Attaches credentials, applies the rate limiter, performs the HTTP call and
classifies the outcome into the error taxonomy.
"""

import json
import logging
import socket
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterator, Optional

import requests
from urllib3.exceptions import NameResolutionError

from .credentials import BasicAuth, BearerToken, Credential
from .errors import (
    ApiFailure,
    AuthRequiredError,
    ConnectionRefused,
    CredentialExpiredError,
    DNSFailure,
    HttpFailure,
    MalformedResponseError,
    TransportFailure,
    TransportTimeout,
    ValidationError,
)
from .rate_limiter import RateLimiter
from .request_builder import RequestDescriptor, ResponseFormat


DEFAULT_TIMEOUT = 30.0

logger = logging.getLogger(__name__)


@dataclass
class APIResponse:
    """Standardised API response wrapper"""
    data: Any
    raw_body: str
    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)
    request_timestamp: datetime = field(default_factory=datetime.now)


class Dispatcher:
    """Executes request descriptors with authentication and rate limiting"""

    def __init__(self, base_url: str, user_agent: str,
                 rate_limiter: Optional[RateLimiter] = None,
                 timeout: float = DEFAULT_TIMEOUT,
                 session: Optional[requests.Session] = None):
        if not user_agent or not user_agent.strip():
            raise ValidationError("A client identification string (user agent) is required")
        if not base_url:
            raise ValidationError("base_url must not be empty")

        self.base_url = base_url.rstrip('/')
        self.user_agent = user_agent
        self.rate_limiter = rate_limiter or RateLimiter()
        self.timeout = timeout
        self.session = session

    def execute(self, request: RequestDescriptor, credential: Credential = None) -> APIResponse:
        """
        Execute a single request

        Args:
            request: Descriptor of the call to make
            credential: Credential to attach, or None for anonymous access

        Returns:
            APIResponse with the parsed payload

        Raises:
            AuthRequiredError: If the request needs auth and no credential was given
            CredentialExpiredError: If a bearer token has already expired
            TransportFailure: On timeouts, refused connections, DNS and other network errors
            HttpFailure: On non-2xx responses
            ApiFailure: If a 2xx body carries a logical error envelope
            MalformedResponseError: If a JSON endpoint returned something that is not JSON
        """
        if request.requires_auth and credential is None:
            raise AuthRequiredError(
                f"{request.method.value} {request.path} requires an authenticated credential"
            )
        if isinstance(credential, BearerToken) and credential.is_expired():
            raise CredentialExpiredError(
                f"Bearer token expired at {credential.expires_at.isoformat()}"
            )

        self.apply_rate_limit()

        if self.session is None:
            self.session = requests.Session()

        url = self.base_url + request.path
        headers = {'User-Agent': self.user_agent}
        auth = None
        if isinstance(credential, BasicAuth):
            auth = (credential.username, credential.password)
        elif isinstance(credential, BearerToken):
            headers['Authorization'] = credential.authorization_header
        if request.response_format is ResponseFormat.JSON:
            headers['Accept'] = 'application/json'

        params = request.query
        data = None
        if request.method.has_body:
            data = _encode_form(request.body)
            if request.response_format is ResponseFormat.JSON and data and 'api_type' not in data:
                data['api_type'] = 'json'

        request_timestamp = datetime.now()
        logger.debug(f"{request.method.value} {url} params={params}")

        try:
            response = self.session.request(
                request.method.value,
                url,
                params=params or None,
                data=data,
                headers=headers,
                auth=auth,
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            failure = self._classify_transport_error(e, url)
            logger.warning(f"Transport failure for {request.method.value} {url}: {failure}")
            raise failure

        raw_body = response.text or ""
        if not 200 <= response.status_code < 300:
            logger.warning(f"HTTP {response.status_code} for {request.method.value} {url}")
            raise HttpFailure(response.status_code, raw_body, url, headers=dict(response.headers))

        metadata = {
            'url': url,
            'method': request.method.value,
            'parameters': params,
        }

        if request.response_format is ResponseFormat.TEXT:
            payload: Any = raw_body
        else:
            payload = self._parse_json(raw_body, url)
            self._raise_for_error_envelope(payload)

        return APIResponse(
            data=payload,
            raw_body=raw_body,
            status_code=response.status_code,
            headers=dict(response.headers),
            metadata=metadata,
            request_timestamp=request_timestamp
        )

    def execute_with_basic_auth(self, request: RequestDescriptor,
                                username: str, password: str) -> APIResponse:
        return self.execute(request, BasicAuth(username, password))

    def apply_rate_limit(self) -> None:
        """Wait for this client's rate limiter before a request leaves"""
        self.rate_limiter.acquire()

    def close_connection(self) -> None:
        """
        Close HTTP session and release resources
        """
        if self.session:
            self.session.close()
            self.session = None

    def __enter__(self) -> "Dispatcher":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close_connection()

    @staticmethod
    def _parse_json(raw_body: str, url: str) -> Any:
        if not raw_body.strip():
            return None
        try:
            return json.loads(raw_body)
        except ValueError as e:
            raise MalformedResponseError(f"Expected JSON from {url}: {e}") from e

    @staticmethod
    def _raise_for_error_envelope(payload: Any) -> None:
        """Raise ApiFailure if a successful body reports logical errors"""
        if not isinstance(payload, dict):
            return
        envelope = payload.get('json')
        if not isinstance(envelope, dict):
            return
        errors = envelope.get('errors')
        if not errors or not isinstance(errors, list):
            return

        first = errors[0]
        if not isinstance(first, (list, tuple)):
            first = [first]
        code = str(first[0]) if len(first) > 0 else "UNKNOWN"
        message = str(first[1]) if len(first) > 1 and first[1] is not None else ""
        field_name = first[2] if len(first) > 2 else None
        logger.warning(f"Service reported error {code}: {message}")
        raise ApiFailure(code, message, field_name, errors=[list(e) if isinstance(e, (list, tuple)) else [e]
                                                            for e in errors])

    @staticmethod
    def _classify_transport_error(error: requests.exceptions.RequestException,
                                  url: str) -> TransportFailure:
        if isinstance(error, requests.exceptions.Timeout):
            return TransportTimeout(f"Request to {url} timed out", cause=error)

        if isinstance(error, requests.exceptions.ConnectionError):
            for cause in _cause_chain(error):
                if isinstance(cause, (socket.gaierror, NameResolutionError)):
                    return DNSFailure(f"Could not resolve host for {url}", cause=error)
                if isinstance(cause, ConnectionRefusedError):
                    return ConnectionRefused(f"Connection refused by {url}", cause=error)

        return TransportFailure(f"Request to {url} failed: {error}", cause=error)


def _cause_chain(error: BaseException) -> Iterator[BaseException]:
    """Walk nested causes, including urllib3's 'reason' and wrapped args"""
    seen = set()
    pending = [error]
    while pending:
        current = pending.pop()
        if id(current) in seen:
            continue
        seen.add(id(current))
        yield current
        for attr in ('__cause__', '__context__', 'reason'):
            nested = getattr(current, attr, None)
            if isinstance(nested, BaseException):
                pending.append(nested)
        pending.extend(arg for arg in getattr(current, 'args', ()) if isinstance(arg, BaseException))


def _encode_form(body: Dict[str, Any]) -> Dict[str, Any]:
    """
    Prepare form fields for url-encoding

    An explicit None becomes an empty value so the field is still sent.
    Booleans use the lowercase spelling the service expects.
    """
    encoded = {}
    for key, value in body.items():
        if value is None:
            encoded[key] = ''
        elif isinstance(value, bool):
            encoded[key] = 'true' if value else 'false'
        else:
            encoded[key] = value
    return encoded
