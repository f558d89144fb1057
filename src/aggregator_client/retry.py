"""
Caller-side retry for operations that are safe to repeat

The Dispatcher never retries on its own; only the caller knows whether an
operation is idempotent (voting is, posting a submission is not).
"""

import logging
import time
from functools import wraps
from typing import Any, Callable, Optional, Tuple, Type, TypeVar

from .errors import HttpFailure, TransportFailure

T = TypeVar("T")

# HTTP status codes that should trigger retries
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

DEFAULT_MAX_RETRIES = 3

logger = logging.getLogger(__name__)


def is_retryable(error: Exception) -> bool:
    """HTTP failures are only worth retrying for transient status codes"""
    if isinstance(error, HttpFailure):
        return error.status_code in RETRYABLE_STATUS_CODES
    return True


def retry_with_backoff(
    max_retries: int = DEFAULT_MAX_RETRIES,
    initial_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    retry_on: Tuple[Type[Exception], ...] = (TransportFailure, HttpFailure),
    sleep: Callable[[float], None] = time.sleep,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator to retry a function with exponential backoff

    Args:
        max_retries: Maximum number of retry attempts
        initial_delay: Delay in seconds before the first retry
        max_delay: Upper bound for any single delay
        exponential_base: Growth factor between consecutive delays
        retry_on: Exception types considered; HttpFailure is only retried for
            status codes in RETRYABLE_STATUS_CODES
        sleep: Sleep function, replaceable in tests

    Example:
        @retry_with_backoff(max_retries=5, initial_delay=0.5)
        def fetch():
            return paginator.next()
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except retry_on as e:
                    if not is_retryable(e) or attempt == max_retries:
                        raise

                    delay = _retry_after(e)
                    if delay is None:
                        delay = initial_delay * (exponential_base ** attempt)
                    delay = min(delay, max_delay)

                    logger.warning(f"Attempt {attempt + 1} of {func.__name__} failed ({e}); retrying in {delay:.2f}s")
                    sleep(delay)

            raise RuntimeError("Retry logic failed unexpectedly")  # pragma: no cover

        return wrapper

    return decorator


def _retry_after(error: Exception) -> Optional[float]:
    """Delay requested by the service through Retry-After, if any"""
    headers = getattr(error, 'headers', None) or {}
    value = headers.get('Retry-After') or headers.get('retry-after')
    if not value:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
