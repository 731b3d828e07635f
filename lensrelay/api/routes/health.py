from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from lensrelay.api.dependencies import get_dispatch_queue, get_registry
from lensrelay.services.dispatch_queue import DispatchQueue
from lensrelay.services.lens_registry import LensRegistry

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness probe used by load balancers and uptime monitors."""

    return {"status": "ok"}


@router.get("/health/details")
def health_details(
    registry: Annotated[LensRegistry, Depends(get_registry)],
    queue: Annotated[DispatchQueue, Depends(get_dispatch_queue)],
) -> dict:
    """Registry size and dispatch queue metrics."""

    return {"status": "ok", "lenses": len(registry), "dispatch": queue.stats()}
