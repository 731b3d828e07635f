"""Tests for global exception handlers.

Validates that domain errors map to the right HTTP status codes with a
consistent error body, and that unexpected errors never leak internals.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from lensrelay.core.errors import (
    AppError,
    AuthenticationAppError,
    DispatchClosedAppError,
    LensExpiredAppError,
    LensNotReadyAppError,
    NotFoundAppError,
    ProviderAppError,
    RateLimitedAppError,
    ValidationAppError,
)
from lensrelay.core.exception_handlers import (
    general_exception_handler,
    setup_exception_handlers,
    status_for,
)


@pytest.fixture
def app_with_handlers() -> FastAPI:
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers)


class TestStatusMapping:
    @pytest.mark.parametrize(
        "error_type, status_code",
        [
            (ValidationAppError, 400),
            (LensNotReadyAppError, 400),
            (AuthenticationAppError, 403),
            (NotFoundAppError, 404),
            (LensExpiredAppError, 410),
            (RateLimitedAppError, 429),
            (ProviderAppError, 502),
            (DispatchClosedAppError, 500),
            (AppError, 500),
        ],
    )
    def test_status_for(self, error_type, status_code) -> None:
        assert status_for(error_type(code="x", message="x")) == status_code


class TestAppErrorHandler:
    """Test handler for AppError and subclasses."""

    def test_error_body_format(self, client: TestClient, app_with_handlers: FastAPI) -> None:
        @app_with_handlers.get("/test-validation")
        async def test_endpoint():
            raise ValidationAppError(
                code="image_too_large",
                message="Image exceeds the maximum accepted size",
                details={"max_bytes": 1024, "actual_value": 2048},
            )

        response = client.get("/test-validation")

        assert response.status_code == 400
        data = response.json()
        assert data["error"]["code"] == "image_too_large"
        assert data["error"]["message"] == "Image exceeds the maximum accepted size"
        assert data["error"]["details"] == {"max_bytes": 1024, "actual_value": 2048}
        assert "request_id" in data["error"]

    def test_details_omitted_when_empty(self, client: TestClient, app_with_handlers: FastAPI) -> None:
        @app_with_handlers.get("/test-expired")
        async def test_endpoint():
            raise LensExpiredAppError(code="lens_expired", message="Lens expired")

        response = client.get("/test-expired")

        assert response.status_code == 410
        assert "details" not in response.json()["error"]

    def test_rate_limited_sets_retry_after(
        self, client: TestClient, app_with_handlers: FastAPI
    ) -> None:
        @app_with_handlers.get("/test-rate-limited")
        async def test_endpoint():
            raise RateLimitedAppError(
                code="rate_limited",
                message="Too many requests",
                details={"retry_after": 0.5},
            )

        response = client.get("/test-rate-limited")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "1"

    def test_provider_error_returns_502(
        self, client: TestClient, app_with_handlers: FastAPI
    ) -> None:
        @app_with_handlers.get("/test-provider")
        async def test_endpoint():
            raise ProviderAppError(
                code="telegram_400",
                message="Bad Request: chat not found",
                details={"http_status": 400},
            )

        response = client.get("/test-provider")

        assert response.status_code == 502
        assert response.json()["error"]["code"] == "telegram_400"
        assert "Retry-After" not in response.headers


class TestGeneralExceptionHandler:
    """Test fallback handler for unexpected exceptions."""

    def test_never_leaks_error_text(self) -> None:
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        exc = RuntimeError("snapshot path /var/lib/lensrelay unreadable")
        response = asyncio.run(general_exception_handler(request, exc))

        data = json.loads(bytes(response.body).decode())
        assert response.status_code == 500
        assert data["error"]["code"] == "internal_server_error"
        assert "/var/lib" not in data["error"]["message"]
        assert "RuntimeError" not in bytes(response.body).decode()

    def test_handlers_registered(self, app_with_handlers: FastAPI) -> None:
        assert AppError in app_with_handlers.exception_handlers
        assert Exception in app_with_handlers.exception_handlers
