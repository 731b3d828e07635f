"""In-memory token bucket rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Refill is computed lazily on each check; there is no background timer.
- Buckets are never expired, so key count grows with distinct callers.
"""

from __future__ import annotations

import threading
import time
from typing import Callable

from lensrelay.adapters.rate_limit.base import AbstractRateLimiter, RateBucket


class InMemoryTokenBucketRateLimiter(AbstractRateLimiter):
    """Token bucket per key with lazy, elapsed-time based refill.

    A key seen for the first time starts with a full bucket, so a burst of
    ``capacity`` requests is admitted before the refill rate applies.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        """Initialize the limiter.

        Args:
            clock: Time source returning seconds; monotonic by default.
        """
        self._clock = clock
        self._lock = threading.RLock()
        self._buckets: dict[str, RateBucket] = {}

    def __len__(self) -> int:
        return len(self._buckets)

    def _refill(self, bucket: RateBucket, now: float, rate_per_second: float, capacity: float) -> None:
        elapsed = max(0.0, now - bucket.last_refill)
        bucket.tokens = min(capacity, bucket.tokens + elapsed * rate_per_second)
        bucket.last_refill = now

    def allow(self, key: str, rate_per_second: float, capacity: float) -> bool:
        """Admit or deny one request for ``key``.

        Raises:
            ValueError: If key is empty or the bucket parameters are invalid.
        """
        if not key:
            raise ValueError("key must be a non-empty string")
        if rate_per_second <= 0:
            raise ValueError("rate_per_second must be > 0")
        if capacity < 1:
            raise ValueError("capacity must be >= 1")

        now = self._clock()

        with self._lock:
            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = RateBucket(tokens=float(capacity), last_refill=now)
                self._buckets[key] = bucket
            else:
                self._refill(bucket, now, rate_per_second, capacity)

            if bucket.tokens >= 1:
                bucket.tokens -= 1
                return True
            return False
