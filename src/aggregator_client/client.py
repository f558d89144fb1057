"""
AggregatorClient module wiring configuration, dispatcher, paginators and managers
"""

import logging
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

from .config_loader import ClientConfig, ConfigLoader
from .credentials import Credential
from .dispatcher import Dispatcher
from .managers import AccountManager, InboxManager
from .paginator import Paginator, PaginatorFactory
from .rate_limiter import RateLimiter
from .retry import retry_with_backoff

T = TypeVar("T")


class AggregatorClient:
    """
    Entry point holding the one Dispatcher shared by every paginator and
    manager created from it
    """

    def __init__(self, dispatcher: Dispatcher, credential: Credential = None,
                 config: Optional[ClientConfig] = None):
        self.dispatcher = dispatcher
        self.credential = credential
        self.config = config
        self.logger = logging.getLogger(__name__)

    @classmethod
    def from_config(cls, config_path: Path) -> "AggregatorClient":
        """
        Build a client from a configuration file

        Raises:
            ConfigurationError: If the configuration is invalid
            EnvironmentVariableError: If referenced credentials are not set
        """
        config = ConfigLoader.load_config(config_path)
        credential = ConfigLoader.build_credential(config)
        dispatcher = Dispatcher(
            base_url=config.base_url,
            user_agent=config.user_agent,
            rate_limiter=RateLimiter(config.minimum_interval),
            timeout=config.request_timeout
        )
        client = cls(dispatcher, credential, config)
        client.logger.info(
            f"Configured client '{config.name}' for {config.base_url} "
            f"({config.authentication.get('type', 'none')} auth, {config.minimum_interval:.2f}s interval)"
        )
        return client

    @property
    def is_authenticated(self) -> bool:
        return self.credential is not None

    def paginator(self, listing: str, **options: Any) -> Paginator:
        """Paginator for a named listing, using the configured page limit by default"""
        if self.config is not None:
            options.setdefault('limit', self.config.page_limit)
        return PaginatorFactory.create(listing, self.dispatcher, self.credential, **options)

    def retrying(self, func: Callable[..., T], **overrides: Any) -> Callable[..., T]:
        """
        Wrap an idempotent operation with the configured retry policy

        Example:
            fetch = client.retrying(paginator.next)
            page = fetch()
        """
        if self.config is not None:
            return self.config.retry_policy(**overrides)(func)
        return retry_with_backoff(**overrides)(func)

    def inbox(self) -> InboxManager:
        return InboxManager(self.dispatcher, self.credential)

    def account(self) -> AccountManager:
        return AccountManager(self.dispatcher, self.credential)

    def close(self) -> None:
        self.dispatcher.close_connection()

    def __enter__(self) -> "AggregatorClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
