"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before any ``lensrelay`` import so settings
never pick up a developer's .env file or write state to disk.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("APP_STATE_BACKEND", "memory")
os.environ.setdefault("APP_PUBLIC_BASE_URL", "https://lens.example.test")
os.environ.setdefault("APP_API_KEY_REQUIRED", "true")
os.environ.setdefault("APP_API_KEYS", "test-api-key-123,test-api-key-456")
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "test-token")
os.environ.setdefault("DISPATCH_PER_CHAT_DELAY_MS", "0")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import asyncio  # noqa: E402
import base64  # noqa: E402

import pytest  # noqa: E402

from lensrelay.adapters.messaging.base import AbstractMessenger  # noqa: E402


class RecordingMessenger(AbstractMessenger):
    """Messenger fake that records sends and can fail on demand."""

    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.failures: list[Exception] = []
        self.closed = False

    async def send_image(self, destination_id, image, *, filename, as_photo=True) -> None:
        await asyncio.sleep(0)
        if self.failures:
            raise self.failures.pop(0)
        self.sent.append(
            {
                "destination_id": destination_id,
                "image": image,
                "filename": filename,
                "as_photo": as_photo,
            }
        )

    async def aclose(self) -> None:
        self.closed = True


class RecordingSleep:
    """Async sleep stand-in that records requested waits and yields once."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        await asyncio.sleep(0)


class FakeClock:
    """Deterministic millisecond clock for the registry."""

    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def messenger() -> RecordingMessenger:
    return RecordingMessenger()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def jpeg_bytes() -> bytes:
    return b"\xff\xd8\xff\xe0fake-jpeg-payload\xff\xd9"


@pytest.fixture
def jpeg_data_url(jpeg_bytes: bytes) -> str:
    return "data:image/jpeg;base64," + base64.b64encode(jpeg_bytes).decode()
