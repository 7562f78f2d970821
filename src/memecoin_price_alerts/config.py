"""Configuration management service with Pydantic Settings.

This module provides centralized configuration management for the
Memecoin Price Alerts bot, loading and validating environment variables
at startup.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENV_FILE = ".env"
_ENV_FILE_ENCODING = "utf-8"

_SUPPORTED_DATABASE_SCHEMES = (
    "postgresql://",
    "postgresql+asyncpg://",
    "sqlite+aiosqlite://",
)


class DatabaseSettings(BaseSettings):
    """Database connection settings."""

    model_config = SettingsConfigDict(env_prefix="", extra="ignore")

    url: str = Field(
        default="sqlite+aiosqlite:///./watchlist.db",
        alias="DATABASE_URL",
        description="PostgreSQL or SQLite (aiosqlite) connection string",
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate database URL format."""
        if not v.startswith(_SUPPORTED_DATABASE_SCHEMES):
            raise ValueError(
                "DATABASE_URL must be a PostgreSQL or sqlite+aiosqlite connection string"
            )
        return v


class DexScreenerSettings(BaseSettings):
    """DexScreener API settings."""

    model_config = SettingsConfigDict(env_prefix="DEXSCREENER_", extra="ignore")

    base_url: str = Field(
        default="https://api.dexscreener.com",
        alias="DEXSCREENER_BASE_URL",
        description="DexScreener API host",
    )
    timeout_seconds: float = Field(
        default=10.0,
        alias="DEXSCREENER_TIMEOUT_SECONDS",
        gt=0,
        le=120,
        description="Per-request timeout",
    )
    batch_pause_seconds: float = Field(
        default=0.25,
        alias="DEXSCREENER_BATCH_PAUSE_SECONDS",
        ge=0,
        le=10,
        description="Pause between successive batch requests (rate limiting)",
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("DEXSCREENER_BASE_URL must be an HTTP(S) endpoint")
        return v.rstrip("/")


class MonitorSettings(BaseSettings):
    """Price monitor settings."""

    model_config = SettingsConfigDict(env_prefix="", extra="ignore")

    check_interval_ms: int = Field(
        default=60_000,
        alias="CHECK_INTERVAL_MS",
        ge=1_000,
        le=24 * 3600 * 1000,
        description="Interval between watchlist sweeps in milliseconds",
    )

    @property
    def check_interval_seconds(self) -> float:
        return self.check_interval_ms / 1000.0


class TelegramSettings(BaseSettings):
    """Telegram bot settings."""

    model_config = SettingsConfigDict(env_prefix="TELEGRAM_", extra="ignore")

    bot_token: SecretStr | None = Field(
        default=None,
        alias="TELEGRAM_BOT_TOKEN",
        description="Telegram bot token from @BotFather",
    )
    conversation_ttl_seconds: int = Field(
        default=600,
        alias="TELEGRAM_CONVERSATION_TTL_SECONDS",
        ge=30,
        le=24 * 3600,
        description="Idle time after which an interactive command flow expires",
    )

    @field_validator("bot_token")
    @classmethod
    def validate_bot_token(cls, v: SecretStr | None) -> SecretStr | None:
        # The .env.example placeholder is treated as unset.
        if v is None or v.get_secret_value() in ("", "your_bot_token_here"):
            return None
        return v

    @property
    def enabled(self) -> bool:
        """Check if a bot token is configured."""
        return self.bot_token is not None


class Settings(BaseSettings):
    """Main application settings.

    Loads configuration from environment variables with support for
    .env files via python-dotenv.

    Example:
        ```python
        from memecoin_price_alerts.config import get_settings

        settings = get_settings()
        print(settings.database.url)
        print(settings.monitor.check_interval_ms)
        ```
    """

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding=_ENV_FILE_ENCODING,
        extra="ignore",
    )

    # Nested configuration groups
    #
    # NOTE: Each nested BaseSettings must be given the same env_file, otherwise it
    # will only read from the process environment (and ignore `.env`).
    database: DatabaseSettings = Field(
        default_factory=lambda: DatabaseSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    dexscreener: DexScreenerSettings = Field(
        default_factory=lambda: DexScreenerSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    monitor: MonitorSettings = Field(
        default_factory=lambda: MonitorSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    telegram: TelegramSettings = Field(
        default_factory=lambda: TelegramSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )

    # Application settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Logging level",
    )
    health_port: int = Field(
        default=8080,
        alias="HEALTH_PORT",
        description="HTTP port for health check endpoints",
        ge=1,
        le=65535,
    )
    dry_run: bool = Field(
        default=False,
        alias="DRY_RUN",
        description="Log price alerts instead of sending them",
    )

    def get_logging_level(self) -> int:
        """Get the numeric logging level."""
        level: int = getattr(logging, self.log_level)
        return level

    def redacted_summary(self) -> dict[str, str | dict[str, str]]:
        """Get a summary of settings with secrets redacted.

        Returns:
            Dictionary of settings with sensitive values masked.
        """
        return {
            "database_url": self._redact_url(self.database.url),
            "dexscreener": {
                "base_url": self.dexscreener.base_url,
                "timeout_seconds": str(self.dexscreener.timeout_seconds),
                "batch_pause_seconds": str(self.dexscreener.batch_pause_seconds),
            },
            "monitor": {
                "check_interval_ms": str(self.monitor.check_interval_ms),
            },
            "telegram": {
                "bot_token": "(set)" if self.telegram.bot_token else "(not set)",
                "conversation_ttl_seconds": str(self.telegram.conversation_ttl_seconds),
            },
            "log_level": self.log_level,
            "health_port": str(self.health_port),
            "dry_run": str(self.dry_run),
        }

    def validate_requirements(self, *, command: Literal["run", "init-db"]) -> None:
        """Validate command-specific requirements.

        The bot cannot serve chats or deliver alerts without a token, so
        `run` refuses to start when it is missing.
        """
        if command == "run" and not self.telegram.enabled:
            raise ValueError("TELEGRAM_BOT_TOKEN is required to run the bot")

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact password from URL if present."""
        if "@" in url and "://" in url:
            protocol_end = url.index("://") + 3
            at_pos = url.index("@")
            creds_part = url[protocol_end:at_pos]
            if ":" in creds_part:
                username = creds_part.split(":")[0]
                return f"{url[:protocol_end]}{username}:***@{url[at_pos + 1 :]}"
        return url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Uses LRU cache to ensure settings are loaded only once and
    reused across the application.

    Returns:
        The Settings instance.

    Raises:
        ValidationError: If environment variables have invalid values.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Useful for testing when you need to reload settings with
    different environment variables.
    """
    get_settings.cache_clear()
