"""Cancellation-aware retry loop with pluggable backoff.

Operations report each attempt's outcome as a Result; policies decide how long
to wait between attempts and when the budget is spent.

Example:
    >>> from retrykit.runtime.retry import Policy, Fibonacci, Finish, Recover
    >>>
    >>> def ping() -> Result:
    ...     try:
    ...         client.ping()
    ...     except ConnectionError as e:
    ...         return Recover(e)
    ...     return Finish()
    >>>
    >>> Policy(backoff=Fibonacci(0.5), retry_count=5).retry(ping)
"""

from .backoff import NO_BACKOFF, Arithmetic, Backoff, Fibonacci, Plain, fibonacci
from .middleware import Middleware, Operation, WithBackoff, WithMaxRetryCount, compose
from .policy import (
    AsyncFunc,
    AsyncFuncScoped,
    Func,
    FuncScoped,
    MiddlewarePolicy,
    Policy,
    aretry,
    aretry_scoped,
    retry,
    retry_scoped,
)
from .result import Abort, Code, Continue, Finish, Recover, RecoverAfter, Result, RetryAfter

__all__ = [
    # Results
    "Result", "Code", "Continue", "Recover", "RecoverAfter", "RetryAfter", "Abort", "Finish",
    # Backoff strategies
    "Backoff", "Plain", "Arithmetic", "Fibonacci", "NO_BACKOFF", "fibonacci",
    # Middleware
    "Middleware", "Operation", "WithBackoff", "WithMaxRetryCount", "compose",
    # Policies
    "Policy", "MiddlewarePolicy", "Func", "FuncScoped", "AsyncFunc", "AsyncFuncScoped",
    # Execution
    "retry", "retry_scoped", "aretry", "aretry_scoped",
]
