"""Tests for CaptureService and data URL decoding."""

import base64
from unittest.mock import Mock

import pytest

from lensrelay.adapters.rate_limit.in_memory import InMemoryTokenBucketRateLimiter
from lensrelay.adapters.storage.memory import InMemorySnapshotStore
from lensrelay.core.config import RateLimitSettings
from lensrelay.core.errors import (
    LensExpiredAppError,
    LensNotReadyAppError,
    ProviderAppError,
    RateLimitedAppError,
    ValidationAppError,
)
from lensrelay.services.capture_service import (
    CaptureMode,
    CaptureService,
    decode_image_data_url,
)
from lensrelay.services.dispatch_queue import DispatchQueue
from lensrelay.services.lens_registry import LensRegistry

MAX_BYTES = 1024


@pytest.fixture
def registry(clock) -> LensRegistry:
    return LensRegistry(
        InMemorySnapshotStore(), public_base_url="https://lens.example.test", clock=clock
    )


@pytest.fixture
def limiter_clock() -> Mock:
    return Mock(return_value=1000.0)


@pytest.fixture
def service_factory(registry, messenger, recording_sleep, limiter_clock):
    """Build a CaptureService inside the running loop of the test."""

    def build(**limits) -> CaptureService:
        options = {
            "enabled": True,
            "lens_rate_per_second": 1.0,
            "lens_capacity": 5.0,
            "ip_rate_per_second": 2.0,
            "ip_capacity": 6.0,
        }
        options.update(limits)
        return CaptureService(
            registry,
            DispatchQueue(per_chat_delay_seconds=0, sleep=recording_sleep),
            messenger,
            InMemoryTokenBucketRateLimiter(clock=limiter_clock),
            rate_limits=RateLimitSettings(**options),
            max_image_bytes=MAX_BYTES,
        )

    return build


@pytest.fixture
def ready_lens(registry: LensRegistry, clock):
    lens = registry.create_lens(42, "Front Door")
    registry.connect_lens(lens.code, 999)
    registry.set_expiry(lens.code, clock.now + 14_400_000)
    return lens


class TestDecodeImageDataUrl:
    def test_decodes_jpeg(self, jpeg_data_url: str, jpeg_bytes: bytes) -> None:
        assert decode_image_data_url(jpeg_data_url, max_bytes=MAX_BYTES) == jpeg_bytes

    def test_accepts_other_image_types(self) -> None:
        data_url = "data:image/png;base64," + base64.b64encode(b"png").decode()

        assert decode_image_data_url(data_url, max_bytes=MAX_BYTES) == b"png"

    @pytest.mark.parametrize(
        "value",
        [
            "",
            "hello",
            "data:text/plain;base64,aGVsbG8=",
            "data:image/jpeg,raw-bytes",
            "data:image/jpeg;base64,",
            "data:image/jpeg;base64,!!!not-base64!!!",
        ],
    )
    def test_rejects_invalid(self, value: str) -> None:
        with pytest.raises(ValidationAppError) as exc_info:
            decode_image_data_url(value, max_bytes=MAX_BYTES)

        assert exc_info.value.code == "invalid_image"

    def test_rejects_oversized(self) -> None:
        data_url = "data:image/jpeg;base64," + base64.b64encode(b"x" * 2000).decode()

        with pytest.raises(ValidationAppError) as exc_info:
            decode_image_data_url(data_url, max_bytes=MAX_BYTES)

        assert exc_info.value.code == "image_too_large"
        assert exc_info.value.details["max_bytes"] == MAX_BYTES


class TestCapture:
    @pytest.mark.asyncio
    async def test_relays_document_by_default(
        self, service_factory, ready_lens, messenger, jpeg_data_url, jpeg_bytes
    ) -> None:
        service = service_factory()

        await service.capture(ready_lens.code, jpeg_data_url, client_ip="203.0.113.7")

        assert messenger.sent == [
            {
                "destination_id": 999,
                "image": jpeg_bytes,
                "filename": f"lens-{ready_lens.code}.jpg",
                "as_photo": False,
            }
        ]
        await service.queue.aclose()

    @pytest.mark.asyncio
    async def test_photo_mode(self, service_factory, ready_lens, messenger, jpeg_data_url) -> None:
        service = service_factory()

        await service.capture(ready_lens.code, jpeg_data_url, mode="photo")

        assert messenger.sent[0]["as_photo"] is True
        await service.queue.aclose()

    @pytest.mark.asyncio
    async def test_unknown_lens(self, service_factory, jpeg_data_url) -> None:
        service = service_factory()

        with pytest.raises(LensNotReadyAppError) as exc_info:
            await service.capture("NOPE23", jpeg_data_url)

        assert exc_info.value.code == "lens_not_connected"
        await service.queue.aclose()

    @pytest.mark.asyncio
    async def test_unconnected_lens(
        self, service_factory, registry, messenger, jpeg_data_url
    ) -> None:
        service = service_factory()
        lens = registry.create_lens(42, "Garage")

        with pytest.raises(LensNotReadyAppError):
            await service.capture(lens.code, jpeg_data_url)

        assert messenger.sent == []
        await service.queue.aclose()

    @pytest.mark.asyncio
    async def test_expired_lens(
        self, service_factory, ready_lens, clock, messenger, jpeg_data_url
    ) -> None:
        service = service_factory()
        clock.advance(14_400_001)

        with pytest.raises(LensExpiredAppError) as exc_info:
            await service.capture(ready_lens.code, jpeg_data_url)

        assert exc_info.value.code == "lens_expired"
        assert messenger.sent == []
        await service.queue.aclose()

    @pytest.mark.asyncio
    async def test_invalid_image_does_not_consume_tokens(
        self, service_factory, ready_lens, messenger, jpeg_data_url
    ) -> None:
        service = service_factory(lens_capacity=1.0)

        with pytest.raises(ValidationAppError):
            await service.capture(ready_lens.code, "data:image/jpeg;base64,")

        await service.capture(ready_lens.code, jpeg_data_url)
        assert len(messenger.sent) == 1
        await service.queue.aclose()

    @pytest.mark.asyncio
    async def test_lens_bucket_limits_bursts(
        self, service_factory, ready_lens, messenger, limiter_clock, jpeg_data_url
    ) -> None:
        service = service_factory()

        for i in range(5):
            await service.capture(ready_lens.code, jpeg_data_url, client_ip=f"198.51.100.{i}")
        with pytest.raises(RateLimitedAppError) as exc_info:
            await service.capture(ready_lens.code, jpeg_data_url, client_ip="198.51.100.9")

        assert exc_info.value.details["retry_after"] == 1.0
        assert len(messenger.sent) == 5

        limiter_clock.return_value = 1001.0
        await service.capture(ready_lens.code, jpeg_data_url, client_ip="198.51.100.9")
        assert len(messenger.sent) == 6
        await service.queue.aclose()

    @pytest.mark.asyncio
    async def test_ip_bucket_spans_lenses(
        self, service_factory, registry, messenger, clock, jpeg_data_url
    ) -> None:
        service = service_factory(ip_capacity=2.0)
        codes = []
        for i in range(3):
            lens = registry.create_lens(42, f"Cam {i}")
            registry.connect_lens(lens.code, 1000 + i)
            codes.append(lens.code)

        await service.capture(codes[0], jpeg_data_url, client_ip="192.0.2.1")
        await service.capture(codes[1], jpeg_data_url, client_ip="192.0.2.1")
        with pytest.raises(RateLimitedAppError) as exc_info:
            await service.capture(codes[2], jpeg_data_url, client_ip="192.0.2.1")

        assert exc_info.value.details["retry_after"] == 0.5
        await service.capture(codes[2], jpeg_data_url, client_ip="192.0.2.2")
        assert [s["destination_id"] for s in messenger.sent] == [1000, 1001, 1002]
        await service.queue.aclose()

    @pytest.mark.asyncio
    async def test_rate_limiting_disabled(
        self, service_factory, ready_lens, messenger, jpeg_data_url
    ) -> None:
        service = service_factory(enabled=False)

        for _ in range(8):
            await service.capture(ready_lens.code, jpeg_data_url)

        assert len(messenger.sent) == 8
        await service.queue.aclose()

    @pytest.mark.asyncio
    async def test_transient_provider_failure_is_retried(
        self, service_factory, ready_lens, messenger, recording_sleep, jpeg_data_url
    ) -> None:
        service = service_factory()
        messenger.failures.append(
            ProviderAppError(code="telegram_429", message="slow down", retry_after_seconds=2)
        )

        await service.capture(ready_lens.code, jpeg_data_url)

        assert recording_sleep.calls == [2.5]
        assert len(messenger.sent) == 1
        await service.queue.aclose()

    @pytest.mark.asyncio
    async def test_fatal_provider_failure_propagates(
        self, service_factory, ready_lens, messenger, jpeg_data_url
    ) -> None:
        service = service_factory()
        messenger.failures.append(
            ProviderAppError(code="telegram_403", message="Forbidden: bot was blocked by the user")
        )

        with pytest.raises(ProviderAppError) as exc_info:
            await service.capture(ready_lens.code, jpeg_data_url)

        assert exc_info.value.code == "telegram_403"
        assert messenger.sent == []
        await service.queue.aclose()

    def test_mode_values(self) -> None:
        assert CaptureMode("photo") is CaptureMode.PHOTO
        assert CaptureMode("document") is CaptureMode.DOCUMENT
