from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse

from lensrelay.api.dependencies import get_registry
from lensrelay.core.errors import NotFoundAppError
from lensrelay.services.lens_registry import LensRegistry

router = APIRouter(tags=["Links"])


@router.get("/l/{short_code}", response_class=RedirectResponse)
def follow_short_link(
    short_code: str,
    registry: Annotated[LensRegistry, Depends(get_registry)],
) -> RedirectResponse:
    """Redirect a short link to the lens URL it was minted for."""

    long_url = registry.resolve_short(short_code)
    if long_url is None:
        raise NotFoundAppError(
            code="short_link_not_found",
            message="Unknown short link",
            details={"short_code": short_code},
        )
    return RedirectResponse(long_url)
