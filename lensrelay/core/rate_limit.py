"""Rate limiting wiring for the HTTP layer.

Design goals:
- One limiter per process, shared by every capture request.
- Swap-friendly: callers depend on AbstractRateLimiter only.
- Client identity comes from the proxy headers the service sits behind.
"""

from __future__ import annotations

import hashlib

from fastapi import Request

from lensrelay.adapters.rate_limit.base import AbstractRateLimiter
from lensrelay.adapters.rate_limit.in_memory import InMemoryTokenBucketRateLimiter

UNKNOWN_CLIENT_IP = "0.0.0.0"

_limiter: AbstractRateLimiter | None = None


def get_rate_limiter() -> AbstractRateLimiter:
    """Return the process-wide rate limiter instance.

    The instance is cached in-module so buckets survive across requests.
    """

    global _limiter

    if _limiter is None:
        _limiter = InMemoryTokenBucketRateLimiter()
    return _limiter


def reset_rate_limiter() -> None:
    """Forget all buckets (used between tests)."""

    global _limiter
    _limiter = None


def client_ip(request: Request) -> str:
    """Resolve the caller's address.

    Order: ``CF-Connecting-IP``, first ``X-Forwarded-For`` entry, socket peer.

    Args:
        request: FastAPI request.

    Returns:
        str: Best-effort client address, ``0.0.0.0`` when unknown.
    """

    header = request.headers.get("cf-connecting-ip") or request.headers.get("x-forwarded-for")
    if header:
        first = header.split(",")[0].strip()
        if first:
            return first

    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT_IP


def hash_client_ip(ip: str) -> str:
    """Hash an address for logging without exposing it."""
    return hashlib.sha256(ip.encode()).hexdigest()[:16]
