"""Factory for the messaging client used to relay captures."""

from lensrelay.adapters.messaging.base import AbstractMessenger
from lensrelay.adapters.messaging.telegram_client import TelegramMessenger
from lensrelay.core.config import settings
from lensrelay.core.errors import ValidationAppError


def create_messenger() -> AbstractMessenger:
    """Instantiate the Telegram messenger from settings.

    Returns:
        AbstractMessenger: Configured messenger instance.

    Raises:
        ValidationAppError: If the bot token is missing.
    """
    if not settings.telegram.bot_token:
        raise ValidationAppError(
            code="telegram_missing_bot_token",
            message="Relaying captures requires TELEGRAM_BOT_TOKEN environment variable",
        )

    return TelegramMessenger(
        bot_token=settings.telegram.bot_token,
        api_base_url=settings.telegram.api_base_url,
        timeout_seconds=settings.telegram.timeout_seconds,
    )
