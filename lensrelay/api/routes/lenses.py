"""Lens management API.

These routes carry the registry calls made by the chat bot: create a lens,
connect it to a chat, pick an expiry, list the owner's lenses and mint a
short link. All of them require ``X-API-Key``.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from lensrelay.api.dependencies import get_registry
from lensrelay.core.auth import verify_api_key
from lensrelay.core.errors import NotFoundAppError
from lensrelay.schemas.lens import Lens
from lensrelay.schemas.management import (
    ConnectLensRequest,
    CreateLensRequest,
    LensListResponse,
    LensResponse,
    SetExpiryRequest,
    ShortLinkResponse,
)
from lensrelay.services.lens_registry import LensRegistry

router = APIRouter(
    prefix="/lenses",
    tags=["Lenses"],
    dependencies=[Depends(verify_api_key)],
)

Registry = Annotated[LensRegistry, Depends(get_registry)]


def _lens_not_found(code: str) -> NotFoundAppError:
    return NotFoundAppError(
        code="lens_not_found",
        message="Unknown lens",
        details={"lens_code": code},
    )


def _to_response(registry: LensRegistry, lens: Lens) -> LensResponse:
    return LensResponse(
        code=lens.code,
        name=lens.name,
        owner_id=lens.owner_id,
        kind=lens.kind,
        destination_id=lens.destination_id,
        expires_at=lens.expires_at,
        expired=registry.is_expired(lens.code),
        short_code=lens.short_code,
        url=registry.public_url(lens),
        short_url=registry.short_url(lens.short_code) if lens.short_code else None,
    )


@router.post("", response_model=LensResponse, status_code=201)
def create_lens(payload: CreateLensRequest, registry: Registry) -> LensResponse:
    lens = registry.create_lens(payload.owner_id, payload.name, payload.kind)
    return _to_response(registry, lens)


@router.get("", response_model=LensListResponse)
def list_lenses(
    registry: Registry,
    owner_id: Annotated[int, Query(description="Owner whose lenses are listed.")],
) -> LensListResponse:
    """List an owner's lenses; stale ones are swept first."""
    lenses = registry.list_by_owner(owner_id)
    return LensListResponse(lenses=[_to_response(registry, lens) for lens in lenses])


@router.get("/{code}", response_model=LensResponse)
def get_lens(code: str, registry: Registry) -> LensResponse:
    lens = registry.get_lens(code)
    if lens is None:
        raise _lens_not_found(code)
    return _to_response(registry, lens)


@router.put("/{code}/destination", response_model=LensResponse)
def connect_lens(code: str, payload: ConnectLensRequest, registry: Registry) -> LensResponse:
    lens = registry.connect_lens(code, payload.destination_id)
    if lens is None:
        raise _lens_not_found(code)
    return _to_response(registry, lens)


@router.put("/{code}/expiry", response_model=LensResponse)
def set_expiry(code: str, payload: SetExpiryRequest, registry: Registry) -> LensResponse:
    if payload.choice is not None:
        lens = registry.set_expiry_choice(code, payload.choice)
    else:
        lens = registry.set_expiry(code, payload.expires_at)
    if lens is None:
        raise _lens_not_found(code)
    return _to_response(registry, lens)


@router.post("/{code}/short", response_model=ShortLinkResponse)
def shorten_lens(code: str, registry: Registry) -> ShortLinkResponse:
    """Mint (or reuse) the short link for the lens's current URL."""
    lens = registry.get_lens(code)
    link = registry.ensure_lens_short(code)
    if lens is None or link is None:
        raise _lens_not_found(code)
    return ShortLinkResponse(
        short_code=link.short_code,
        short_url=link.short_url,
        long_url=registry.public_url(lens),
    )
