"""Application-level exception types.

Domain errors shared by services, adapters and the HTTP layer. Lookup misses
are not errors here: the registry returns ``None`` and only the HTTP layer
turns that into ``NotFoundAppError``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    code: str
    message: str
    hint: str
    lens_code: str
    short_code: str
    destination_id: int
    http_status: int
    retry_after: float
    max_chars: int
    max_bytes: int
    actual_value: int
    path: str
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input fails validation before any registry mutation."""


class NotFoundAppError(AppError):
    """Raised by the HTTP layer when a lens or short link does not exist."""


class LensNotReadyAppError(AppError):
    """Raised when a capture targets a lens that is not connected to a chat."""


class LensExpiredAppError(AppError):
    """Raised when a capture targets a lens past its expiry."""


class RateLimitedAppError(AppError):
    """Raised when capture admission is denied by the token bucket."""


class AuthenticationAppError(AppError):
    """Raised when management API authentication fails."""


class PersistenceAppError(AppError):
    """Raised by snapshot stores when reading or writing state fails."""


class DispatchClosedAppError(AppError):
    """Raised for tasks still queued when the dispatch queue shuts down."""


@dataclass
class ProviderAppError(AppError):
    """Failure reported by the messaging provider.

    Attributes:
        transient: True for rate limiting, server-side and network failures.
        retry_after_seconds: Explicit backoff requested by the provider.
    """

    transient: bool = False
    retry_after_seconds: float | None = None

    @property
    def retryable(self) -> bool:
        return self.transient or self.retry_after_seconds is not None
