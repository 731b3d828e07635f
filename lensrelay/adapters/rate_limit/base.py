"""Rate limiter interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class RateBucket:
    """Token bucket state for one key.

    Attributes:
        tokens: Available tokens, always within [0, capacity].
        last_refill: Clock reading (seconds) of the last refill.
    """

    tokens: float
    last_refill: float


class AbstractRateLimiter(ABC):
    """Interface for per-key admission control."""

    @abstractmethod
    def allow(self, key: str, rate_per_second: float, capacity: float) -> bool:
        """Try to take one token from the bucket for ``key``.

        Args:
            key: Namespaced identifier (e.g. ``lens:AB12CD``, ``ip:1.2.3.4``).
            rate_per_second: Refill rate of the bucket.
            capacity: Maximum tokens the bucket holds.

        Returns:
            True if the request is admitted.
        """
        raise NotImplementedError
