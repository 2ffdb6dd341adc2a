"""Environment-based configuration using pydantic-settings.

Provides type-safe, validated configuration from environment variables
with sensible defaults. Supports .env files and nested configuration.

Example:
    >>> from retrykit.foundation.config import get_settings
    >>> settings = get_settings()
    >>> policy = settings.retry.build_policy()
    >>> print(settings.logging.level)
    'INFO'

    # Or with environment variables:
    # RETRYKIT_RETRY_STRATEGY=fibonacci
    # RETRYKIT_RETRY_DELAY=0.5
    # RETRYKIT_LOG_LEVEL=DEBUG
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from functools import lru_cache
from typing import TYPE_CHECKING, Annotated, Literal

import orjson
from pydantic import Field, NonNegativeFloat, PositiveFloat, PositiveInt, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from retrykit.runtime.retry import Backoff, Policy


class RetrySettings(BaseSettings):
    """Default retry configuration."""

    model_config = SettingsConfigDict(
        env_prefix="RETRYKIT_RETRY_",
        extra="ignore",
    )

    retry_count: Annotated[int, Field(ge=0)] = 3
    strategy: Literal["plain", "arithmetic", "fibonacci"] = "plain"
    delay: NonNegativeFloat = Field(
        default=1.0,
        description="Plain delay, arithmetic initial delay or fibonacci base, in seconds",
    )
    delta: float = Field(default=1.0, description="Arithmetic increment per attempt")

    @field_validator("strategy", mode="before")
    @classmethod
    def _normalize_strategy(cls, v: str) -> str:
        return v.lower() if isinstance(v, str) else v

    def build_backoff(self) -> Backoff:
        """Instantiate the configured backoff strategy."""
        from retrykit.runtime.retry import Arithmetic, Fibonacci, Plain

        match self.strategy:
            case "arithmetic":
                return Arithmetic(self.delay, self.delta)
            case "fibonacci":
                return Fibonacci(self.delay)
            case _:
                return Plain(self.delay)

    def build_policy(self) -> Policy:
        from retrykit.runtime.retry import Policy

        return Policy(backoff=self.build_backoff(), retry_count=self.retry_count)


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="RETRYKIT_LOG_",
        extra="ignore",
    )

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "text"] = "text"
    include_timestamps: bool = True


class HttpSettings(BaseSettings):
    """HTTP retry transport configuration."""

    model_config = SettingsConfigDict(
        env_prefix="RETRYKIT_HTTP_",
        extra="ignore",
    )

    retry_after_cap: PositiveFloat = Field(
        default=120.0,
        description="Largest Retry-After value honoured, in seconds",
    )


class DurableSettings(BaseSettings):
    """Durable request processing configuration."""

    model_config = SettingsConfigDict(
        env_prefix="RETRYKIT_DURABLE_",
        extra="ignore",
    )

    worker_count: PositiveInt = 1
    max_attempts: PositiveInt | None = Field(
        default=None,
        description="Recorded attempts after which a request is aborted (None = unlimited)",
    )
    page_size: PositiveInt = 100


class RetryKitSettings(BaseSettings):
    """Root settings for retrykit.

    Loads configuration from environment variables with RETRYKIT_ prefix.
    Supports nested configuration and .env files.

    Example environment variables:
        RETRYKIT_RETRY_RETRY_COUNT=5
        RETRYKIT_LOG_LEVEL=DEBUG
        RETRYKIT_HTTP_RETRY_AFTER_CAP=30
        RETRYKIT_DURABLE_WORKER_COUNT=4
    """

    model_config = SettingsConfigDict(
        env_prefix="RETRYKIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    retry: RetrySettings = Field(default_factory=RetrySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    http: HttpSettings = Field(default_factory=HttpSettings)
    durable: DurableSettings = Field(default_factory=DurableSettings)


_TEXT_FORMAT = "%(levelname)s %(name)s: %(message)s"


class JsonFormatter(logging.Formatter):
    """JSON Lines formatter: one object per record, values escaped by orjson.

    Attributes:
        include_timestamps: Add an ISO-8601 `timestamp` field
    """

    def __init__(self, include_timestamps: bool = True) -> None:
        super().__init__()
        self.include_timestamps = include_timestamps

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, object] = {}
        if self.include_timestamps:
            data["timestamp"] = datetime.fromtimestamp(record.created, UTC).isoformat()
        data |= {"level": record.levelname, "logger": record.name, "message": record.getMessage()}
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        return orjson.dumps(data, default=str).decode()


def configure_logging(settings: LoggingSettings | None = None) -> logging.Logger:
    """Apply LoggingSettings to the `retrykit` logger hierarchy.

    Replaces handlers previously installed by this function, so it is safe to
    call again after settings change.
    """
    settings = settings or get_settings().logging
    root = logging.getLogger("retrykit")
    root.setLevel(settings.level)

    if settings.format == "json":
        formatter: logging.Formatter = JsonFormatter(settings.include_timestamps)
    elif settings.include_timestamps:
        formatter = logging.Formatter(f"%(asctime)s {_TEXT_FORMAT}")
    else:
        formatter = logging.Formatter(_TEXT_FORMAT)

    for handler in [h for h in root.handlers if getattr(h, "_retrykit", False)]:
        root.removeHandler(handler)
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    handler._retrykit = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    return root


# Singleton pattern for settings
@lru_cache(maxsize=1)
def get_settings() -> RetryKitSettings:
    """Get the global settings instance (cached)."""
    return RetryKitSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing).

    After calling this, the next get_settings() call will
    reload configuration from environment.
    """
    get_settings.cache_clear()
