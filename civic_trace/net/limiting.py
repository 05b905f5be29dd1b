"""Sliding-window rate limiting for the expensive ladder tiers."""

from __future__ import annotations
import logging
import time
from collections import defaultdict, deque
from contextlib import contextmanager
from typing import Callable, Deque, Dict, Iterator, Optional

from ..config import RateLimitConfig

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60.0


class RateLimiter:
    """
    Per-key request budget over a sliding one-minute window.

    With no configuration every check passes. A configured limiter reports a
    key as limited once ``requests_per_minute`` calls fall inside the window,
    or once ``max_concurrent`` calls for that key are in flight.
    """

    def __init__(self, config: Optional[RateLimitConfig] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.config = config
        self._clock = clock
        self._calls: Dict[str, Deque[float]] = defaultdict(deque)
        self._in_flight: Dict[str, int] = defaultdict(int)

    def _prune(self, key: str, now: float) -> Deque[float]:
        calls = self._calls[key]
        while calls and now - calls[0] >= WINDOW_SECONDS:
            calls.popleft()
        return calls

    def is_rate_limited(self, key: str = "browser") -> bool:
        if self.config is None:
            return False
        rpm = self.config.requests_per_minute
        if rpm is not None and len(self._prune(key, self._clock())) >= rpm:
            logger.info(f"Rate limit reached for {key}: {rpm} requests/minute")
            return True
        max_concurrent = self.config.max_concurrent
        if max_concurrent is not None and self._in_flight[key] >= max_concurrent:
            logger.info(f"Concurrency limit reached for {key}: {max_concurrent} in flight")
            return True
        return False

    def record(self, key: str = "browser") -> None:
        """Count one call against ``key``'s window."""
        now = self._clock()
        self._prune(key, now).append(now)

    @contextmanager
    def track(self, key: str = "browser") -> Iterator[None]:
        """Record a call and hold an in-flight slot for its duration."""
        self.record(key)
        self._in_flight[key] += 1
        try:
            yield
        finally:
            self._in_flight[key] -= 1
