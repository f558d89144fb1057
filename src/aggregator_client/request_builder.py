"""
RequestBuilder module for constructing immutable request descriptors
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import ValidationError


class HttpMethod(str, Enum):
    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"

    @property
    def has_body(self) -> bool:
        return self not in (HttpMethod.GET, HttpMethod.HEAD)


class ResponseFormat(str, Enum):
    """Whether the endpoint answers with the JSON API or raw text"""
    JSON = "json"
    TEXT = "text"


Pairs = Tuple[Tuple[str, Any], ...]


def _put(pairs: Pairs, key: str, value: Any) -> Pairs:
    """Return pairs with key set to value, keeping first-insertion order"""
    if not isinstance(key, str) or not key:
        raise ValidationError(f"Parameter keys must be non-empty strings, got {key!r}")
    if any(existing == key for existing, _ in pairs):
        return tuple((k, value if k == key else v) for k, v in pairs)
    return pairs + ((key, value),)


@dataclass(frozen=True)
class RequestDescriptor:
    """Represents a single HTTP call. Never carries credentials."""
    method: HttpMethod
    path: str
    params: Pairs = ()
    form: Pairs = ()
    requires_auth: bool = True
    response_format: ResponseFormat = ResponseFormat.JSON

    @property
    def query(self) -> Dict[str, Any]:
        return dict(self.params)

    @property
    def body(self) -> Dict[str, Any]:
        return dict(self.form)

    def with_params(self, **params: Any) -> "RequestDescriptor":
        """Copy of this descriptor with extra query parameters"""
        pairs = self.params
        for key, value in params.items():
            pairs = _put(pairs, key, value)
        return replace(self, params=pairs)


@dataclass(frozen=True)
class RequestBuilder:
    """
    Fluent builder for RequestDescriptor

    Each call returns a new builder, so a partially configured builder can be
    shared and extended without affecting other users of it.
    """
    _method: Optional[HttpMethod] = None
    _path: str = ""
    _params: Pairs = ()
    _form: Pairs = ()
    _requires_auth: bool = True
    _response_format: ResponseFormat = ResponseFormat.JSON

    def method(self, method: Any) -> "RequestBuilder":
        try:
            resolved = HttpMethod(method.upper() if isinstance(method, str) else method)
        except ValueError:
            raise ValidationError(f"Unsupported HTTP method: {method!r}")
        return replace(self, _method=resolved)

    def get(self, path: str) -> "RequestBuilder":
        return self.method(HttpMethod.GET).path(path)

    def post(self, path: str) -> "RequestBuilder":
        return self.method(HttpMethod.POST).path(path)

    def path(self, path: str) -> "RequestBuilder":
        return replace(self, _path=path)

    def param(self, key: str, value: Any) -> "RequestBuilder":
        """Set a query parameter. The last write wins for duplicate keys."""
        return replace(self, _params=_put(self._params, key, value))

    def params(self, values: Mapping[str, Any]) -> "RequestBuilder":
        builder = self
        for key, value in values.items():
            builder = builder.param(key, value)
        return builder

    def form(self, values: Mapping[str, Any]) -> "RequestBuilder":
        """
        Set form body fields

        A value of None is kept as an explicit field and is distinct from a
        field that was never set.
        """
        pairs = self._form
        for key, value in values.items():
            pairs = _put(pairs, key, value)
        return replace(self, _form=pairs)

    def requires_auth(self, flag: bool) -> "RequestBuilder":
        return replace(self, _requires_auth=bool(flag))

    def response_format(self, response_format: ResponseFormat) -> "RequestBuilder":
        return replace(self, _response_format=ResponseFormat(response_format))

    def text(self) -> "RequestBuilder":
        return self.response_format(ResponseFormat.TEXT)

    def build(self) -> RequestDescriptor:
        """
        Build the descriptor

        Raises:
            ValidationError: If the method is unset or the path is empty
        """
        if self._method is None:
            raise ValidationError("Request method must be set before build()")
        if not self._path or not self._path.strip():
            raise ValidationError("Request path must not be empty")

        path = self._path.strip()
        if not path.startswith("/"):
            path = "/" + path

        return RequestDescriptor(
            method=self._method,
            path=path,
            params=self._params,
            form=self._form,
            requires_auth=self._requires_auth,
            response_format=self._response_format,
        )


def new_request() -> RequestBuilder:
    """Start a new request. Authentication is required unless cleared."""
    return RequestBuilder()
