"""Pydantic schemas for the public capture endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field

from lensrelay.schemas.lens import LensKind
from lensrelay.services.capture_service import CaptureMode


class CaptureRequest(BaseModel):
    """One frame captured by the lens page."""

    image: str = Field(
        ..., description="Frame as a base64 data URL (data:image/jpeg;base64,...)."
    )
    mode: CaptureMode = Field(
        default=CaptureMode.DOCUMENT,
        description="'photo' sends a compressed photo, 'document' keeps full quality.",
    )


class CaptureResponse(BaseModel):
    ok: bool = True


class LensStatusResponse(BaseModel):
    """What the public page needs to render a lens."""

    code: str
    name: str
    kind: LensKind
    connected: bool = Field(..., description="Whether captures can be relayed.")
    expired: bool
    expires_at: int | None = Field(
        default=None, description="Expiry as unix epoch milliseconds, for countdowns."
    )
