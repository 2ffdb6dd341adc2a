"""Configuration management using pydantic-settings.

Provides environment-based configuration with type safety and validation.
"""

from .settings import (
    DurableSettings,
    HttpSettings,
    JsonFormatter,
    LoggingSettings,
    RetryKitSettings,
    RetrySettings,
    clear_settings_cache,
    configure_logging,
    get_settings,
)

__all__ = [
    "DurableSettings",
    "HttpSettings",
    "JsonFormatter",
    "LoggingSettings",
    "RetryKitSettings",
    "RetrySettings",
    "clear_settings_cache",
    "configure_logging",
    "get_settings",
]
