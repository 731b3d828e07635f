"""Pydantic schemas for the lens management API."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field, model_validator

from lensrelay.schemas.lens import LENS_NAME_MAX_CHARS, ExpiryChoice, LensKind


class CreateLensRequest(BaseModel):
    owner_id: int = Field(..., description="Identity of the creating user.")
    name: str = Field(..., min_length=1, max_length=LENS_NAME_MAX_CHARS)
    kind: LensKind = LensKind.CAMERA


class ConnectLensRequest(BaseModel):
    destination_id: int = Field(..., description="Chat that receives captures.")


class SetExpiryRequest(BaseModel):
    """Either an absolute expiry or one of the offered lifetimes."""

    expires_at: int | None = Field(
        default=None, description="Absolute expiry as unix epoch milliseconds."
    )
    choice: ExpiryChoice | None = Field(
        default=None, description="Lifetime counted from now (4h, 10h, 24h, 2d, 3d, 4d)."
    )

    @model_validator(mode="after")
    def _exactly_one(self) -> "SetExpiryRequest":
        if (self.expires_at is None) == (self.choice is None):
            raise ValueError("Provide exactly one of 'expires_at' or 'choice'")
        return self


class LensResponse(BaseModel):
    """Lens as seen by its owner, with ready-to-share links."""

    code: str
    name: str
    owner_id: int
    kind: LensKind
    destination_id: int | None = None
    expires_at: int | None = None
    expired: bool = False
    short_code: str | None = None
    url: str = Field(..., description="Camera or online page URL, depending on kind.")
    short_url: str | None = None


class LensListResponse(BaseModel):
    lenses: List[LensResponse] = Field(default_factory=list)


class ShortLinkResponse(BaseModel):
    short_code: str
    short_url: str
    long_url: str
