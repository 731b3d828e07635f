"""Global exception handlers for consistent error responses.

Design:
- AppError subclasses map to HTTP status codes through ``STATUS_BY_ERROR``
- Unexpected Exception becomes a generic 500 (safety net)
- All responses include request_id for tracing
"""

import logging
import math

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from lensrelay.core.errors import (
    AppError,
    AuthenticationAppError,
    LensExpiredAppError,
    LensNotReadyAppError,
    NotFoundAppError,
    ProviderAppError,
    RateLimitedAppError,
    ValidationAppError,
)
from lensrelay.core.logging import get_request_id

logger = logging.getLogger(__name__)

# Checked in order; first isinstance match wins
STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (ValidationAppError, 400),
    (LensNotReadyAppError, 400),
    (AuthenticationAppError, 403),
    (NotFoundAppError, 404),
    (LensExpiredAppError, 410),
    (RateLimitedAppError, 429),
    (ProviderAppError, 502),
)


def status_for(exc: AppError) -> int:
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render domain errors as ``{"error": {...}}`` with the mapped status.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error details.
    """
    status_code = status_for(exc)
    log = logger.error if status_code >= 500 else logger.warning
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "request_path": request.url.path,
            "request_id": get_request_id(),
        },
    )

    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    if exc.details:
        error_content["details"] = exc.details

    headers: dict[str, str] = {}
    retry_after = (exc.details or {}).get("retry_after")
    if status_code == 429 and retry_after is not None:
        headers["Retry-After"] = str(max(1, math.ceil(retry_after)))

    return JSONResponse(
        status_code=status_code,
        content={"error": error_content},
        headers=headers or None,
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors; never leaks internals."""
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
