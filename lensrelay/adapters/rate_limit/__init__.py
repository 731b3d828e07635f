"""Rate limiting adapters.

Capture ingestion depends on the abstract limiter only, so the in-memory token
bucket can later move to a shared store without changing callers.
"""

from lensrelay.adapters.rate_limit.base import AbstractRateLimiter
from lensrelay.adapters.rate_limit.in_memory import InMemoryTokenBucketRateLimiter

__all__ = ["AbstractRateLimiter", "InMemoryTokenBucketRateLimiter"]
