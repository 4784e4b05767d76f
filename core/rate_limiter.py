# core/rate_limiter.py
"""Sliding-window budget for outbound story requests."""

from __future__ import annotations

import time
from collections import deque
from collections.abc import Callable

import structlog

from config import settings
from core.errors import ErrorKind, StoryError

logger = structlog.get_logger(__name__)

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again later."


class RateLimiter:
    """Allow at most ``max_requests`` accepted calls per trailing ``window_seconds``.

    Rejections are immediate; the limiter never sleeps. Timestamps are only
    ever appended, so eviction from the left keeps the log ordered.
    """

    def __init__(
        self,
        max_requests: int = settings.RATE_LIMIT_MAX_REQUESTS,
        window_seconds: float = settings.RATE_LIMIT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._timestamps: deque[float] = deque()

    def _evict(self, now: float) -> None:
        cutoff = now - self.window_seconds
        while self._timestamps and self._timestamps[0] < cutoff:
            self._timestamps.popleft()

    def check_and_record(self) -> None:
        """Record a request, or raise ``StoryError`` if the budget is spent."""
        now = self._clock()
        self._evict(now)
        if len(self._timestamps) >= self.max_requests:
            logger.warning(
                "Client rate limit reached.",
                max_requests=self.max_requests,
                window_seconds=self.window_seconds,
            )
            raise StoryError(
                ErrorKind.RATE_LIMITED, RATE_LIMIT_MESSAGE, status_code=429
            )
        self._timestamps.append(now)

    def remaining(self) -> int:
        """Return how many requests the current window still admits."""
        self._evict(self._clock())
        return max(0, self.max_requests - len(self._timestamps))

    def __len__(self) -> int:
        return len(self._timestamps)
