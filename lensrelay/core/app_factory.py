"""Application factory for the FastAPI app.

Centralizes app construction (middleware, handlers, routers) and the
lifespan that builds the core components. Tests pass their own snapshot
store and messenger instead of the configured ones.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from lensrelay.adapters.messaging.base import AbstractMessenger
from lensrelay.adapters.messaging.factory import create_messenger
from lensrelay.adapters.storage.base import AbstractSnapshotStore
from lensrelay.adapters.storage.factory import create_snapshot_store
from lensrelay.api.routes import capture_router, health_router, lenses_router, links_router
from lensrelay.core.config import settings
from lensrelay.core.exception_handlers import setup_exception_handlers
from lensrelay.core.logging import configure_logging
from lensrelay.core.middleware import request_id_middleware
from lensrelay.core.openapi import apply_openapi_customizations
from lensrelay.core.rate_limit import get_rate_limiter
from lensrelay.services.capture_service import CaptureService
from lensrelay.services.dispatch_queue import DispatchQueue
from lensrelay.services.lens_registry import LensRegistry

logger = logging.getLogger(__name__)


def build_registry(snapshot_store: AbstractSnapshotStore) -> LensRegistry:
    return LensRegistry(
        snapshot_store,
        public_base_url=settings.app.public_base_url,
        grace_ms=int(settings.app.cleanup_grace_hours * 60 * 60 * 1000),
        max_code_attempts=settings.app.max_code_attempts,
    )


def build_dispatch_queue() -> DispatchQueue:
    cfg = settings.dispatch
    return DispatchQueue(
        max_concurrent=cfg.max_concurrent,
        per_chat_delay_seconds=cfg.per_chat_delay_ms / 1000,
        max_retries=cfg.max_retries,
        base_delay_seconds=cfg.base_delay_seconds,
        retry_margin_seconds=cfg.retry_margin_seconds,
    )


def create_app(
    *,
    snapshot_store: AbstractSnapshotStore | None = None,
    messenger: AbstractMessenger | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        snapshot_store: Registry persistence; defaults to the configured backend.
        messenger: Provider client; defaults to the Telegram messenger.

    Returns:
        Configured FastAPI app. Core components are created when the app
        starts and torn down when it stops.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        registry = build_registry(snapshot_store or create_snapshot_store())
        registry.load()

        client = messenger or create_messenger()
        queue = build_dispatch_queue()

        app.state.registry = registry
        app.state.dispatch_queue = queue
        app.state.capture_service = CaptureService(
            registry,
            queue,
            client,
            get_rate_limiter(),
            rate_limits=settings.rate_limit,
            max_image_bytes=settings.app.max_image_bytes,
        )
        logger.info(
            "app.started",
            extra={"lenses": len(registry), "public_base_url": settings.app.public_base_url},
        )
        try:
            yield
        finally:
            await queue.aclose()
            await client.aclose()
            logger.info("app.stopped")

    app = FastAPI(
        title="Lens Relay",
        description=(
            "Short-lived capture lenses relaying browser photos and screenshots "
            "into Telegram group chats."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    app.middleware("http")(request_id_middleware)
    setup_exception_handlers(app)
    apply_openapi_customizations(app)

    app.include_router(health_router)
    app.include_router(links_router)
    app.include_router(capture_router)
    app.include_router(lenses_router, prefix="/v1")

    return app
