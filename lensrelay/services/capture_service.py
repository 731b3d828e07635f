"""Capture ingestion: from a browser frame to a queued chat send.

This service is the glue between the public capture endpoint and the core.
It handles:
- Lens readiness checks (exists, connected, not expired)
- Data URL validation and decoding
- Token bucket admission per lens and per client address
- Handing the send to the dispatch queue and awaiting its outcome
"""

from __future__ import annotations

import base64
import binascii
import logging
from enum import Enum

from lensrelay.adapters.messaging.base import AbstractMessenger
from lensrelay.adapters.rate_limit.base import AbstractRateLimiter
from lensrelay.core.config import RateLimitSettings
from lensrelay.core.errors import (
    LensExpiredAppError,
    LensNotReadyAppError,
    RateLimitedAppError,
    ValidationAppError,
)
from lensrelay.core.rate_limit import hash_client_ip
from lensrelay.schemas.lens import Lens
from lensrelay.services.dispatch_queue import DispatchQueue
from lensrelay.services.lens_registry import LensRegistry

logger = logging.getLogger(__name__)

DATA_URL_PREFIX = "data:image"


class CaptureMode(str, Enum):
    """How the frame is delivered to the chat."""

    PHOTO = "photo"
    DOCUMENT = "document"


def decode_image_data_url(data_url: str, *, max_bytes: int) -> bytes:
    """Decode a ``data:image/...;base64,...`` URL into raw bytes.

    Args:
        data_url: Data URL produced by a browser canvas.
        max_bytes: Largest decoded payload accepted.

    Returns:
        Decoded image bytes.

    Raises:
        ValidationAppError: If the value is not a base64 image data URL, is
            empty, or exceeds ``max_bytes``.
    """
    if not isinstance(data_url, str) or not data_url.startswith(DATA_URL_PREFIX):
        raise ValidationAppError(code="invalid_image", message="Invalid image")

    header, sep, payload = data_url.partition(",")
    if not sep or ";base64" not in header or not payload:
        raise ValidationAppError(code="invalid_image", message="Invalid image")

    try:
        image = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationAppError(code="invalid_image", message="Invalid image") from exc

    if not image:
        raise ValidationAppError(code="invalid_image", message="Invalid image")
    if len(image) > max_bytes:
        raise ValidationAppError(
            code="image_too_large",
            message="Image exceeds the maximum accepted size",
            details={"max_bytes": max_bytes, "actual_value": len(image)},
        )
    return image


class CaptureService:
    """Validate, admit and relay captured frames.

    Attributes:
        registry: Lens registry used for lookups.
        queue: Dispatch queue that serializes sends per chat.
        messenger: Provider client performing the actual send.
        limiter: Token bucket limiter for admission control.
    """

    def __init__(
        self,
        registry: LensRegistry,
        queue: DispatchQueue,
        messenger: AbstractMessenger,
        limiter: AbstractRateLimiter,
        *,
        rate_limits: RateLimitSettings,
        max_image_bytes: int,
    ) -> None:
        self.registry = registry
        self.queue = queue
        self.messenger = messenger
        self.limiter = limiter
        self._limits = rate_limits
        self._max_image_bytes = max_image_bytes

    def _require_ready_lens(self, code: str) -> Lens:
        lens = self.registry.get_lens(code)
        if lens is None or lens.destination_id is None:
            raise LensNotReadyAppError(
                code="lens_not_connected",
                message="Lens not connected",
                details={"lens_code": code},
            )
        if self.registry.is_expired(code):
            raise LensExpiredAppError(
                code="lens_expired",
                message="Lens expired",
                details={"lens_code": code},
            )
        return lens

    def _admit(self, code: str, client_ip: str) -> None:
        if not self._limits.enabled:
            return

        lens_ok = self.limiter.allow(
            f"lens:{code}", self._limits.lens_rate_per_second, self._limits.lens_capacity
        )
        ip_ok = lens_ok and self.limiter.allow(
            f"ip:{client_ip}", self._limits.ip_rate_per_second, self._limits.ip_capacity
        )
        if lens_ok and ip_ok:
            return

        scope = "lens" if not lens_ok else "ip"
        rate = self._limits.lens_rate_per_second if scope == "lens" else self._limits.ip_rate_per_second
        logger.warning(
            "rate_limit.exceeded",
            extra={"lens_code": code, "scope": scope, "client_hash": hash_client_ip(client_ip)},
        )
        raise RateLimitedAppError(
            code="rate_limited",
            message="Too many requests",
            details={"lens_code": code, "retry_after": 1.0 / rate},
        )

    async def capture(
        self,
        code: str,
        image_data_url: str,
        *,
        mode: CaptureMode | str = CaptureMode.DOCUMENT,
        client_ip: str = "0.0.0.0",
    ) -> None:
        """Relay one captured frame to the lens's chat.

        Returns once the send has completed, including any retries.

        Raises:
            LensNotReadyAppError: Lens unknown or not connected.
            LensExpiredAppError: Lens past its expiry.
            ValidationAppError: Image is not a valid base64 data URL.
            RateLimitedAppError: Admission denied for the lens or client.
            ProviderAppError: The provider rejected the send for good.
        """
        lens = self._require_ready_lens(code)
        image = decode_image_data_url(image_data_url, max_bytes=self._max_image_bytes)
        self._admit(code, client_ip)

        destination_id = lens.destination_id
        as_photo = mode == CaptureMode.PHOTO
        filename = f"lens-{code}.jpg"

        async def send() -> None:
            await self.messenger.send_image(
                destination_id, image, filename=filename, as_photo=as_photo
            )

        await self.queue.enqueue(destination_id, send)
        logger.info(
            "capture.relayed",
            extra={
                "lens_code": code,
                "destination_id": destination_id,
                "mode": "photo" if as_photo else "document",
                "size_bytes": len(image),
            },
        )
