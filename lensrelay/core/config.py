"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings.
# Pydantic nested BaseSettings don't inherit env_file.
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    Static type checkers treat BaseSettings fields as constructor arguments,
    which is not how BaseSettings is intended to be used.
    """

    return AppSettings()  # type: ignore[call-arg]


def _build_dispatch_settings() -> "DispatchSettings":
    return DispatchSettings()  # type: ignore[call-arg]


def _build_rate_limit_settings() -> "RateLimitSettings":
    return RateLimitSettings()  # type: ignore[call-arg]


def _build_telegram_settings() -> "TelegramSettings":
    return TelegramSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class AppSettings(BaseSettings):
    """Application-wide configuration (public URLs, state, management auth)."""

    public_base_url: str = Field(
        "https://morilens.party",
        description="Public base address used to build lens and short links",
    )
    api_key_required: bool = Field(
        True,
        description="Whether the lens management API requires an X-API-Key header",
    )
    api_keys: str | None = Field(
        None,
        description="Comma-separated list of valid API keys for the management API",
    )
    state_backend: str = Field(
        "file",
        description="Registry snapshot backend: 'file' or 'memory'",
    )
    state_file: str = Field(
        "data/lenses.json",
        description="Path of the JSON snapshot holding lenses and short links",
    )
    cleanup_grace_hours: float = Field(
        96.0,
        description="Hours an expired lens is retained before the sweep removes it",
        gt=0,
    )
    max_code_attempts: int = Field(
        32,
        description="Random draws per code length before falling back to a longer code",
        ge=1,
    )
    host: str = Field("0.0.0.0", description="Interface the HTTP server binds to")
    port: int = Field(3000, description="Port the HTTP server listens on")
    max_image_bytes: int = Field(
        20 * 1024 * 1024,
        description="Largest decoded capture accepted by the ingestion endpoint",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class DispatchSettings(BaseSettings):
    """Outbound dispatch queue tuning."""

    max_concurrent: int = Field(
        8,
        description="Maximum in-flight sends across all destinations",
        ge=1,
    )
    per_chat_delay_ms: int = Field(
        400,
        description="Pause after each task before the next send to the same chat",
        ge=0,
    )
    max_retries: int = Field(
        3,
        description="Retries allowed for a task on transient provider failures",
        ge=0,
    )
    base_delay_seconds: float = Field(
        1.0,
        description="Initial backoff when the provider gives no retry-after hint",
        ge=0,
    )
    retry_margin_seconds: float = Field(
        0.5,
        description="Extra wait added on top of a provider retry-after hint",
        ge=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="DISPATCH_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Token bucket parameters for capture ingestion."""

    enabled: bool = Field(True, description="Enable capture rate limiting")
    lens_rate_per_second: float = Field(1.0, gt=0)
    lens_capacity: float = Field(5.0, ge=1)
    ip_rate_per_second: float = Field(2.0, gt=0)
    ip_capacity: float = Field(6.0, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class TelegramSettings(BaseSettings):
    """Telegram Bot API access."""

    bot_token: str | None = Field(
        None,
        description="Bot token issued by BotFather (required to relay captures)",
    )
    api_base_url: str = Field(
        "https://api.telegram.org",
        description="Bot API endpoint (override for a local Bot API server)",
    )
    timeout_seconds: float = Field(
        30.0,
        description="Timeout for a single Bot API request",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="TELEGRAM_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: 'json' or 'plain'")
    output: str = Field("stdout", description="Log destination: 'stdout' or 'file'")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(0, description="Rotate log file at this size (0 disables)")
    backup_count: int = Field(5, description="Rotated log files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header carrying the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=_build_app_settings)
    dispatch: DispatchSettings = Field(default_factory=_build_dispatch_settings)
    rate_limit: RateLimitSettings = Field(default_factory=_build_rate_limit_settings)
    telegram: TelegramSettings = Field(default_factory=_build_telegram_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance composed from domain-specific settings.
settings = Settings()
