"""Runtime: the retry loop and the cancellation scopes it runs under."""

from .concurrency import CancelScope
from .retry import (
    Abort,
    Arithmetic,
    Backoff,
    Code,
    Continue,
    Fibonacci,
    Finish,
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
    "CancelScope",
    "Result", "Code", "Continue", "Recover", "RecoverAfter", "RetryAfter", "Abort", "Finish",
    "Backoff", "Plain", "Arithmetic", "Fibonacci",
    "WithBackoff", "WithMaxRetryCount", "compose",
    "Policy", "MiddlewarePolicy",
    "retry", "retry_scoped", "aretry", "aretry_scoped",
]
