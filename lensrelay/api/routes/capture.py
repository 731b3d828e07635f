from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from lensrelay.api.dependencies import get_capture_service, get_registry
from lensrelay.core.errors import NotFoundAppError
from lensrelay.core.rate_limit import client_ip
from lensrelay.schemas.capture import CaptureRequest, CaptureResponse, LensStatusResponse
from lensrelay.services.capture_service import CaptureService
from lensrelay.services.lens_registry import LensRegistry

router = APIRouter(prefix="/api/lens", tags=["Capture"])


@router.get("/{code}", response_model=LensStatusResponse)
def lens_status(
    code: str,
    registry: Annotated[LensRegistry, Depends(get_registry)],
) -> LensStatusResponse:
    """Public status of a lens, polled by the lens page.

    Raises:
        NotFoundAppError: 404 if the lens does not exist.
    """
    lens = registry.get_lens(code)
    if lens is None:
        raise NotFoundAppError(
            code="lens_not_found",
            message="Unknown lens",
            details={"lens_code": code},
        )
    return LensStatusResponse(
        code=lens.code,
        name=lens.name,
        kind=lens.kind,
        connected=lens.connected,
        expired=registry.is_expired(code),
        expires_at=lens.expires_at,
    )


@router.post("/{code}/shoot", response_model=CaptureResponse)
async def shoot(
    code: str,
    payload: CaptureRequest,
    request: Request,
    service: Annotated[CaptureService, Depends(get_capture_service)],
) -> CaptureResponse:
    """Relay one captured frame into the lens's chat.

    Responds after the send completed (retries included). Errors are rendered
    by the global handlers: 400 not connected / invalid image, 410 expired,
    429 rate limited, 502 provider failure.
    """
    await service.capture(
        code,
        payload.image,
        mode=payload.mode,
        client_ip=client_ip(request),
    )
    return CaptureResponse(ok=True)
