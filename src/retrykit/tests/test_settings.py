"""Tests for environment-based configuration."""

from __future__ import annotations

import json
import logging
import sys

import pytest
from pydantic import ValidationError

from retrykit.foundation.config import (
    JsonFormatter,
    LoggingSettings,
    RetryKitSettings,
    RetrySettings,
    clear_settings_cache,
    configure_logging,
    get_settings,
)
from retrykit.runtime.retry import Arithmetic, Fibonacci, Plain, Policy


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch: pytest.MonkeyPatch) -> object:
    """Isolate every test from the caller's RETRYKIT_ environment."""
    import os

    for key in [k for k in os.environ if k.startswith("RETRYKIT_")]:
        monkeypatch.delenv(key)
    clear_settings_cache()
    yield
    clear_settings_cache()


# ═════════════════════════════════════════════════════════════════════════════
# Defaults and environment
# ═════════════════════════════════════════════════════════════════════════════


def test_defaults() -> None:
    settings = RetryKitSettings()
    assert settings.retry.retry_count == 3
    assert settings.retry.strategy == "plain"
    assert settings.logging.level == "INFO"
    assert settings.http.retry_after_cap == 120.0
    assert settings.durable.max_attempts is None
    assert settings.durable.worker_count == 1


def test_retry_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RETRYKIT_RETRY_STRATEGY", "Fibonacci")
    monkeypatch.setenv("RETRYKIT_RETRY_DELAY", "0.5")
    monkeypatch.setenv("RETRYKIT_RETRY_RETRY_COUNT", "7")

    policy = get_settings().retry.build_policy()

    assert policy == Policy(backoff=Fibonacci(0.5), retry_count=7)


def test_durable_and_http_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RETRYKIT_DURABLE_MAX_ATTEMPTS", "10")
    monkeypatch.setenv("RETRYKIT_DURABLE_WORKER_COUNT", "4")
    monkeypatch.setenv("RETRYKIT_HTTP_RETRY_AFTER_CAP", "30")

    settings = get_settings()

    assert settings.durable.max_attempts == 10
    assert settings.durable.worker_count == 4
    assert settings.http.retry_after_cap == 30.0


def test_settings_cached() -> None:
    assert get_settings() is get_settings()


def test_invalid_values_rejected() -> None:
    with pytest.raises(ValidationError):
        RetrySettings(retry_count=-1)
    with pytest.raises(ValidationError):
        RetrySettings(strategy="exponential")


# ═════════════════════════════════════════════════════════════════════════════
# Builders
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.parametrize(
    ("strategy", "expected"),
    [
        ("plain", Plain(2.0)),
        ("arithmetic", Arithmetic(2.0, 0.5)),
        ("fibonacci", Fibonacci(2.0)),
    ],
)
def test_build_backoff(strategy: str, expected: object) -> None:
    assert RetrySettings(strategy=strategy, delay=2.0, delta=0.5).build_backoff() == expected


# ═════════════════════════════════════════════════════════════════════════════
# Logging
# ═════════════════════════════════════════════════════════════════════════════


def test_configure_logging_replaces_own_handler() -> None:
    root = configure_logging(LoggingSettings(level="DEBUG", format="json"))
    configure_logging(LoggingSettings(level="WARNING", include_timestamps=False))

    own = [h for h in root.handlers if getattr(h, "_retrykit", False)]
    assert len(own) == 1
    assert root.level == logging.WARNING
    assert own[0].formatter is not None
    assert own[0].formatter._fmt == "%(levelname)s %(name)s: %(message)s"  # type: ignore[union-attr]

    root.removeHandler(own[0])
    root.setLevel(logging.NOTSET)


def test_json_lines_escape_message() -> None:
    """Quotes, backslashes and newlines in messages still yield valid JSON."""
    message = '[GET https://x] ValueError: bad "quote" in C:\\tmp\nsecond line, retrying'
    record = logging.LogRecord("retrykit.http", logging.WARNING, __file__, 1, message, None, None)

    line = JsonFormatter(include_timestamps=True).format(record)
    data = json.loads(line)

    assert "\n" not in line
    assert data["message"] == message
    assert data["level"] == "WARNING"
    assert data["logger"] == "retrykit.http"
    assert "timestamp" in data


def test_json_lines_args_and_exception() -> None:
    try:
        raise ValueError('no "such" key')
    except ValueError:
        record = logging.LogRecord("retrykit", logging.ERROR, __file__, 1, "[%s] failed", ("op",), sys.exc_info())

    data = json.loads(JsonFormatter(include_timestamps=False).format(record))

    assert data["message"] == "[op] failed"
    assert "timestamp" not in data
    assert 'ValueError: no "such" key' in data["exception"]


def test_configure_logging_json_formatter() -> None:
    root = configure_logging(LoggingSettings(format="json"))
    own = [h for h in root.handlers if getattr(h, "_retrykit", False)]

    assert isinstance(own[0].formatter, JsonFormatter)

    root.removeHandler(own[0])
    root.setLevel(logging.NOTSET)
