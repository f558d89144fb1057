"""
RateLimiter module for client-side request spacing

Enforces a minimum interval between requests leaving this process. This is
independent of any throttling the service applies itself.
"""

import logging
import threading
import time
from typing import Callable, Optional, Set


DEFAULT_MINIMUM_INTERVAL = 1.0

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Minimum-interval throttle with first-come first-served release

    Callers draw a ticket and wait for their turn. Only the caller holding the
    current ticket reads and writes the last request timestamp, so no two
    callers are released within the same interval window.
    """

    def __init__(self, minimum_interval: float = DEFAULT_MINIMUM_INTERVAL,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        if minimum_interval < 0:
            raise ValueError("minimum_interval must not be negative")
        self.minimum_interval = minimum_interval
        self.last_request_time: Optional[float] = None
        self._clock = clock
        self._sleep = sleep
        self._turn = threading.Condition()
        self._next_ticket = 0
        self._now_serving = 0
        self._abandoned: Set[int] = set()

    @classmethod
    def from_requests_per_second(cls, requests_per_second: float, **kwargs) -> "RateLimiter":
        if requests_per_second <= 0:
            raise ValueError("requests_per_second must be positive")
        return cls(1.0 / requests_per_second, **kwargs)

    @property
    def queue_depth(self) -> int:
        """Number of callers currently waiting or being released"""
        with self._turn:
            return self._next_ticket - self._now_serving - len(self._abandoned)

    def acquire(self) -> float:
        """
        Block until the minimum interval since the previous release has passed

        Returns:
            Seconds spent sleeping for this caller's own interval
        """
        with self._turn:
            ticket = self._next_ticket
            self._next_ticket += 1
            try:
                while ticket != self._now_serving:
                    self._turn.wait()
            except BaseException:
                # A cancelled waiter gives up its ticket
                if ticket == self._now_serving:
                    self._advance()
                else:
                    self._abandoned.add(ticket)
                raise

        try:
            return self._wait_for_interval()
        finally:
            with self._turn:
                self._advance()

    def _advance(self) -> None:
        """Move to the next live ticket. Caller must hold the condition."""
        self._now_serving += 1
        while self._now_serving in self._abandoned:
            self._abandoned.remove(self._now_serving)
            self._now_serving += 1
        self._turn.notify_all()

    def _wait_for_interval(self) -> float:
        delay = 0.0
        if self.last_request_time is not None:
            elapsed = self._clock() - self.last_request_time
            if elapsed < self.minimum_interval:
                delay = self.minimum_interval - elapsed
                logger.debug(f"Rate limiter sleeping {delay:.3f}s")
                self._sleep(delay)

        self.last_request_time = self._clock()
        return delay


_shared_lock = threading.Lock()
_shared_limiter: Optional[RateLimiter] = None


def shared_rate_limiter(minimum_interval: float = DEFAULT_MINIMUM_INTERVAL) -> RateLimiter:
    """Process-wide limiter. The interval only applies on first creation."""
    global _shared_limiter
    with _shared_lock:
        if _shared_limiter is None:
            _shared_limiter = RateLimiter(minimum_interval)
        return _shared_limiter
