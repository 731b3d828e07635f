"""Pydantic schemas for lenses, short links and the registry snapshot."""

from __future__ import annotations

from enum import Enum
from typing import Dict, List

from pydantic import BaseModel, Field


LENS_NAME_MAX_CHARS = 80
SNAPSHOT_VERSION = 1


class LensKind(str, Enum):
    """What the public page of a lens does."""

    CAMERA = "camera"
    ONLINE = "online"


class ExpiryChoice(str, Enum):
    """Lifetimes offered when a lens owner picks an expiry."""

    FOUR_HOURS = "4h"
    TEN_HOURS = "10h"
    ONE_DAY = "24h"
    TWO_DAYS = "2d"
    THREE_DAYS = "3d"
    FOUR_DAYS = "4d"


_HOUR_MS = 60 * 60 * 1000

EXPIRY_CHOICE_MS: Dict[ExpiryChoice, int] = {
    ExpiryChoice.FOUR_HOURS: 4 * _HOUR_MS,
    ExpiryChoice.TEN_HOURS: 10 * _HOUR_MS,
    ExpiryChoice.ONE_DAY: 24 * _HOUR_MS,
    ExpiryChoice.TWO_DAYS: 2 * 24 * _HOUR_MS,
    ExpiryChoice.THREE_DAYS: 3 * 24 * _HOUR_MS,
    ExpiryChoice.FOUR_DAYS: 4 * 24 * _HOUR_MS,
}


def choice_to_ms(choice: ExpiryChoice | str) -> int:
    """Convert an expiry choice to milliseconds; unknown choices mean 24h."""

    try:
        return EXPIRY_CHOICE_MS[ExpiryChoice(choice)]
    except ValueError:
        return EXPIRY_CHOICE_MS[ExpiryChoice.ONE_DAY]


class Lens(BaseModel):
    """A codenamed capture endpoint bound (eventually) to a destination chat."""

    code: str = Field(..., description="Unique lens identifier.")
    name: str = Field(..., max_length=LENS_NAME_MAX_CHARS)
    owner_id: int = Field(..., description="Identity of the user who created the lens.")
    destination_id: int | None = Field(
        default=None, description="Chat the lens relays into, set on connect."
    )
    expires_at: int | None = Field(
        default=None, description="Expiry as unix epoch milliseconds."
    )
    short_code: str | None = Field(default=None, description="Lazily assigned alias.")
    kind: LensKind = LensKind.CAMERA

    @property
    def connected(self) -> bool:
        return self.destination_id is not None


class ShortLink(BaseModel):
    """Result of shortening a long URL."""

    short_code: str
    short_url: str


class RegistrySnapshot(BaseModel):
    """Everything the registry persists, written and read as one document."""

    version: int = SNAPSHOT_VERSION
    lenses: List[Lens] = Field(default_factory=list)
    short_links: Dict[str, str] = Field(default_factory=dict)
