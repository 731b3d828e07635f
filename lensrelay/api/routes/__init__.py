from __future__ import annotations

from lensrelay.api.routes.capture import router as capture_router
from lensrelay.api.routes.health import router as health_router
from lensrelay.api.routes.lenses import router as lenses_router
from lensrelay.api.routes.links import router as links_router

__all__ = ["capture_router", "health_router", "lenses_router", "links_router"]
