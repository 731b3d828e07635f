"""Telegram Bot API messenger adapter."""

import re
from typing import Any

import httpx

from lensrelay.adapters.messaging.base import AbstractMessenger
from lensrelay.core.errors import ProviderAppError

_RETRY_AFTER_RE = re.compile(r"retry after (\d+)", re.IGNORECASE)


def parse_retry_after(description: str | None) -> float | None:
    """Extract the backoff hint from a Bot API error description.

    >>> parse_retry_after("Too Many Requests: retry after 5")
    5.0
    """
    if not description:
        return None
    match = _RETRY_AFTER_RE.search(description)
    if match:
        return float(match.group(1))
    return None


def build_provider_error(status_code: int, body: Any) -> ProviderAppError:
    """Translate a failed Bot API response into a structured error.

    Telegram error bodies look like
    ``{"ok": false, "error_code": 429, "description": "...",
    "parameters": {"retry_after": 5}}``. Anything unparseable is classified by
    the HTTP status alone.
    """
    body = body if isinstance(body, dict) else {}
    error_code = body.get("error_code") or status_code
    description = str(body.get("description") or f"HTTP {status_code}")

    retry_after: float | None = None
    parameters = body.get("parameters")
    if isinstance(parameters, dict) and parameters.get("retry_after") is not None:
        retry_after = float(parameters["retry_after"])
    if retry_after is None:
        retry_after = parse_retry_after(description)

    try:
        numeric_code = int(error_code)
    except (TypeError, ValueError):
        numeric_code = status_code

    transient = numeric_code == 429 or numeric_code >= 500
    return ProviderAppError(
        code=f"telegram_{numeric_code}",
        message=description,
        details={"http_status": status_code},
        transient=transient,
        retry_after_seconds=retry_after,
    )


class TelegramMessenger(AbstractMessenger):
    """Send captures through ``sendPhoto`` / ``sendDocument``.

    Uses a shared ``httpx.AsyncClient`` with a bounded timeout.
    """

    def __init__(
        self,
        bot_token: str,
        api_base_url: str = "https://api.telegram.org",
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the Bot API client.

        Args:
            bot_token: Token issued by BotFather.
            api_base_url: Bot API endpoint.
            timeout_seconds: Timeout for each request in seconds.
            transport: Optional custom transport (tests use httpx.MockTransport).
        """
        self._base = f"{api_base_url.rstrip('/')}/bot{bot_token}"
        self.client = httpx.AsyncClient(timeout=timeout_seconds, transport=transport)

    async def send_image(
        self,
        destination_id: int,
        image: bytes,
        *,
        filename: str,
        as_photo: bool = True,
    ) -> None:
        method, field = ("sendPhoto", "photo") if as_photo else ("sendDocument", "document")

        try:
            response = await self.client.post(
                f"{self._base}/{method}",
                data={"chat_id": str(destination_id)},
                files={field: (filename, image, "image/jpeg")},
            )
        except httpx.TimeoutException as exc:
            raise ProviderAppError(
                code="telegram_timeout",
                message=f"Telegram {method} timed out",
                details={"destination_id": destination_id},
                transient=True,
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderAppError(
                code="telegram_unreachable",
                message=f"Telegram {method} failed: {type(exc).__name__}",
                details={"destination_id": destination_id},
                transient=True,
            ) from exc

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.status_code == 200 and isinstance(body, dict) and body.get("ok"):
            return

        raise build_provider_error(response.status_code, body)

    async def aclose(self) -> None:
        await self.client.aclose()
