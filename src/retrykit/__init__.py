"""retrykit - Cancellation-aware retry loop with pluggable backoff.

Operations report the outcome of each attempt as a Result; policies retry
them with a backoff strategy until they finish, abort, run out of budget, or
their cancel scope ends.

Quick Start:
    >>> from retrykit import Policy, Fibonacci, Finish, Recover
    >>>
    >>> def ping() -> Result:
    ...     try:
    ...         client.ping()
    ...     except ConnectionError as e:
    ...         return Recover(e)      # retry, remember the error
    ...     return Finish()            # stop, success
    >>>
    >>> Policy(backoff=Fibonacci(0.5), retry_count=5).retry(ping)

Cancellation:
    >>> from retrykit import CancelScope
    >>> with CancelScope(timeout=10.0) as scope:
    ...     policy.retry_scoped(scope, lambda scope: ping())

Middleware:
    >>> from retrykit import MiddlewarePolicy, WithBackoff, WithMaxRetryCount
    >>> MiddlewarePolicy(WithMaxRetryCount(3), WithBackoff(Plain(1.0))).retry(ping)

Failures are raised: an aborting error as is, exhaustion as RetryCountExceeded
and cancellation as the scope's cause, each joined with the last recoverable
error when there is one (catch with `except*`).

HTTP (httpx):
    >>> from retrykit.http import RetryTransport
    >>> client = httpx.Client(transport=RetryTransport(policy))
"""

from __future__ import annotations

__version__ = "0.3.0"

# Errors
from .foundation.errors import (
    Cancelled,
    DeadlineExceeded,
    JoinedError,
    RetryCountExceeded,
    RetryKitError,
    StorageError,
    is_error,
    join_errors,
)

# Config
from .foundation.config import RetryKitSettings, clear_settings_cache, configure_logging, get_settings

# Cancellation
from .runtime.concurrency import CancelScope

# Retry
from .runtime.retry import (
    NO_BACKOFF,
    Abort,
    Arithmetic,
    Backoff,
    Code,
    Continue,
    Fibonacci,
    Finish,
    Middleware,
    MiddlewarePolicy,
    Plain,
    Policy,
    Recover,
    RecoverAfter,
    Result,
    RetryAfter,
    WithBackoff,
    WithMaxRetryCount,
    aretry,
    aretry_scoped,
    compose,
    retry,
    retry_scoped,
)

__all__ = [
    "__version__",
    # Results
    "Result",
    "Code",
    "Continue",
    "Recover",
    "RecoverAfter",
    "RetryAfter",
    "Abort",
    "Finish",
    # Backoff strategies
    "Backoff",
    "Plain",
    "Arithmetic",
    "Fibonacci",
    "NO_BACKOFF",
    # Middleware
    "Middleware",
    "WithBackoff",
    "WithMaxRetryCount",
    "compose",
    # Policies and execution
    "Policy",
    "MiddlewarePolicy",
    "retry",
    "retry_scoped",
    "aretry",
    "aretry_scoped",
    # Cancellation
    "CancelScope",
    # Errors
    "RetryKitError",
    "RetryCountExceeded",
    "Cancelled",
    "DeadlineExceeded",
    "StorageError",
    "JoinedError",
    "join_errors",
    "is_error",
    # Config
    "RetryKitSettings",
    "get_settings",
    "clear_settings_cache",
    "configure_logging",
]
