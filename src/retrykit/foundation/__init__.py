"""Foundation - Core building blocks for retrykit.

Contains: error handling, configuration, testing helpers.
"""

from __future__ import annotations

__all__ = [
    # Errors
    "RetryKitError", "RetryCountExceeded", "Cancelled", "DeadlineExceeded", "StorageError",
    "JoinedError", "join_errors", "is_error",
    # Testing
    "ScriptedOperation", "ScriptedStep", "Invocation", "assert_result_equal",
    # Config
    "RetryKitSettings", "get_settings", "clear_settings_cache", "configure_logging",
    "RetrySettings", "LoggingSettings", "HttpSettings", "DurableSettings",
]


def __getattr__(name: str):
    """Lazy imports to avoid circular dependencies."""
    if name in ("ScriptedOperation", "ScriptedStep", "Invocation", "assert_result_equal"):
        from . import testing
        return getattr(testing, name)
    if name in ("RetryKitSettings", "get_settings", "clear_settings_cache", "configure_logging",
                "RetrySettings", "LoggingSettings", "HttpSettings", "DurableSettings"):
        from . import config
        return getattr(config, name)
    if name in __all__:
        from . import errors
        return getattr(errors, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
