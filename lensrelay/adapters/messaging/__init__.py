"""Messaging adapter layer - abstracts over the chat provider used for relaying."""

from lensrelay.adapters.messaging.base import AbstractMessenger
from lensrelay.adapters.messaging.factory import create_messenger
from lensrelay.adapters.messaging.telegram_client import TelegramMessenger

__all__ = [
    "AbstractMessenger",
    "TelegramMessenger",
    "create_messenger",
]
