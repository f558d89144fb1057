"""
Credential types paired with a request at dispatch time
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Union


@dataclass(frozen=True)
class BasicAuth:
    """HTTP Basic credentials"""
    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class BearerToken:
    """Bearer/session token with an optional expiry"""
    token: str = field(repr=False)
    expires_at: Optional[datetime] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return now >= expires_at

    @property
    def authorization_header(self) -> str:
        return f"bearer {self.token}"


# None stands for "no credential"
Credential = Optional[Union[BasicAuth, BearerToken]]


def credential_from_config(authentication: Dict[str, Any],
                           lookup: Callable[[str], str]) -> Credential:
    """
    Build a credential from an [authentication] configuration section

    Args:
        authentication: Section with a 'type' key and '*_env' references
        lookup: Resolves an environment variable name to its value

    Returns:
        BasicAuth, BearerToken or None for anonymous access

    Raises:
        ValueError: If the authentication type is not supported
    """
    auth_type = authentication.get('type', 'none')

    if auth_type == 'none':
        return None

    if auth_type == 'basic':
        return BasicAuth(
            username=lookup(authentication['username_env']),
            password=lookup(authentication['password_env'])
        )

    if auth_type == 'bearer_token':
        expires_at = authentication.get('expires_at')
        if isinstance(expires_at, str):
            expires_at = datetime.fromisoformat(expires_at)
        return BearerToken(token=lookup(authentication['token_env']), expires_at=expires_at)

    raise ValueError(f"Unsupported authentication type: {auth_type}")
