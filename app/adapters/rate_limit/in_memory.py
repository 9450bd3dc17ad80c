"""In-memory sliding-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
- No background eviction: stale timestamps are pruned when their key is
  next consumed, so idle keys keep a few floats around until then.
"""

from __future__ import annotations

import math
import threading
import time
from collections import deque
from typing import Callable

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult


class InMemorySlidingWindowRateLimiter(AbstractRateLimiter):
    """Allow at most ``limit`` accepted attempts per key in any trailing window.

    Each key keeps the timestamps of its accepted attempts in arrival order.
    On every call, timestamps older than ``now - window_seconds`` are dropped;
    the attempt is accepted (and recorded) only if fewer than ``limit``
    remain. Rejected attempts are not recorded.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            limit: Maximum number of accepted attempts per window.
            window_seconds: Size of the sliding window in seconds.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If limit or window_seconds are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")

        self._limit = limit
        self._window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._hits_by_key: dict[str, deque[float]] = {}

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> int:
        return self._window_seconds

    def _prune(self, hits: deque[float], now: float) -> None:
        cutoff = now - self._window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()

    def consume(self, key: str) -> RateLimitResult:
        """Check the key's trailing window and record the attempt if allowed.

        Args:
            key: Client identity.

        Returns:
            RateLimitResult with allowance decision and metadata.

        Raises:
            ValueError: If key is empty.
        """
        if not key:
            raise ValueError("key must be a non-empty string")

        now = self._clock()

        with self._lock:
            hits = self._hits_by_key.setdefault(key, deque())
            self._prune(hits, now)

            if len(hits) < self._limit:
                hits.append(now)
                return RateLimitResult(
                    allowed=True,
                    limit=self._limit,
                    remaining=self._limit - len(hits),
                    reset_at=int(math.ceil(hits[0] + self._window_seconds)),
                    retry_after_seconds=None,
                )

            oldest_expires_at = hits[0] + self._window_seconds
            retry_after = max(1, int(math.ceil(oldest_expires_at - now)))
            return RateLimitResult(
                allowed=False,
                limit=self._limit,
                remaining=0,
                reset_at=int(math.ceil(oldest_expires_at)),
                retry_after_seconds=retry_after,
            )

    def reset(self) -> None:
        with self._lock:
            self._hits_by_key.clear()

    def tracked_keys(self) -> int:
        """Number of keys currently holding state (for diagnostics/tests)."""

        with self._lock:
            return len(self._hits_by_key)
