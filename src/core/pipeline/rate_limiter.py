"""Sliding-window upload rate limiting."""

from collections import deque
from collections.abc import Callable
from threading import Lock
import time
from typing import Protocol

from core.utils.constants import DEFAULT_UPLOAD_RATE_LIMIT, DEFAULT_UPLOAD_RATE_WINDOW_SECONDS


class RateLimiter(Protocol):
    def allow(self, key: str) -> bool: ...


class InMemorySlidingWindowRateLimiter:
    """Allows at most `limit` events per `window_seconds` for each key.

    State lives in the instance, so its lifetime is whatever owns it
    (one per Lambda container in the handlers).
    """

    def __init__(
        self,
        *,
        limit: int = DEFAULT_UPLOAD_RATE_LIMIT,
        window_seconds: float = DEFAULT_UPLOAD_RATE_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if limit < 1 or window_seconds <= 0:
            raise ValueError("limit and window_seconds must be positive")

        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._events: dict[str, deque[float]] = {}
        self._lock = Lock()

    def allow(self, key: str) -> bool:
        """Record one event for `key` if it fits in the current window."""
        now = self._clock()

        with self._lock:
            bucket = self._events.setdefault(key, deque())
            self._evict(bucket, now)

            if len(bucket) >= self.limit:
                return False

            bucket.append(now)
            return True

    def cleanup(self) -> int:
        """Forget keys with no events in the current window."""
        now = self._clock()

        with self._lock:
            idle = []
            for key, bucket in self._events.items():
                self._evict(bucket, now)
                if not bucket:
                    idle.append(key)
            for key in idle:
                del self._events[key]

        return len(idle)

    def _evict(self, bucket: deque[float], now: float) -> None:
        while bucket and now - bucket[0] >= self.window_seconds:
            bucket.popleft()
