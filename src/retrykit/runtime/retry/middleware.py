"""Middleware that decorates retry operations.

A middleware turns an operation into another operation with the same call
signature, post-processing each Result before the loop sees it. Keeping the
attempt counting and budget here lets the loop itself stay minimal.

Each call to a middleware allocates fresh counters captured by the returned
wrapper, so a wrapped operation is good for exactly one retry invocation.
MiddlewarePolicy rebuilds the chain per invocation; callers composing by hand
must do the same.

Example:
    >>> op = compose(fetch, WithMaxRetryCount(3), WithBackoff(Fibonacci(0.5)))
    >>> # WithMaxRetryCount is outermost and sees the final Result
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable
from dataclasses import dataclass
from functools import wraps
from typing import Callable, TypeAlias, TypeVar

from retrykit.foundation.errors import RetryCountExceeded, join_errors

from .backoff import Backoff
from .result import Abort, Result

Operation: TypeAlias = Callable[..., Result] | Callable[..., Awaitable[Result]]
Middleware: TypeAlias = Callable[[Operation], Operation]

OpT = TypeVar("OpT", bound=Callable[..., object])


@dataclass(slots=True)
class _Attempts:
    """Per-invocation middleware state."""
    attempt: int = 0
    last_error: Exception | None = None


def _is_async(op: object) -> bool:
    return inspect.iscoroutinefunction(op) or inspect.iscoroutinefunction(getattr(op, "__call__", None))


async def _observe_awaited(pending: Awaitable[Result], observe: Callable[[Result], Result]) -> Result:
    return observe(await pending)


def _observing(op: OpT, observe: Callable[[Result], Result]) -> OpT:
    """Wrap op so every Result it returns passes through observe.

    Coroutine functions get an async wrapper. Any other callable that turns out
    to return an awaitable (a lambda around a coroutine function, a callable
    object) gets its awaitable observed once awaited.
    """
    if _is_async(op):
        @wraps(op)
        async def async_wrapped(*args: object) -> Result:
            return observe(await op(*args))
        return async_wrapped  # type: ignore[return-value]

    @wraps(op)
    def wrapped(*args: object) -> Result | Awaitable[Result]:
        result = op(*args)
        if inspect.isawaitable(result):
            return _observe_awaited(result, observe)
        return observe(result)
    return wrapped  # type: ignore[return-value]


@dataclass(frozen=True, slots=True)
class WithBackoff:
    """Inject the strategy's delay into results that carry no override.

    The attempt counter advances on every non-terminal result. Terminal results
    pass through untouched.
    """

    backoff: Backoff

    def __call__(self, op: OpT) -> OpT:
        state = _Attempts()

        def observe(result: Result) -> Result:
            if result.terminal:
                return result
            if result.backoff_override == 0:
                result = result.with_backoff(self.backoff(state.attempt))
            state.attempt += 1
            return result

        return _observing(op, observe)


@dataclass(frozen=True, slots=True)
class WithMaxRetryCount:
    """Abort once `retry_count` retries have been spent.

    `retry_count` counts attempts after the first one, so the wrapped operation
    runs at most retry_count + 1 times. The abort error is RetryCountExceeded
    joined with the last recoverable error seen, if any.
    """

    retry_count: int

    def __post_init__(self) -> None:
        if self.retry_count < 0:
            raise ValueError(f"retry_count must be non-negative, got {self.retry_count}")

    def __call__(self, op: OpT) -> OpT:
        state = _Attempts()

        def observe(result: Result) -> Result:
            if result.terminal:
                return result
            if result.err is not None:
                state.last_error = result.err
            if state.attempt >= self.retry_count:
                return Abort(join_errors(RetryCountExceeded(), state.last_error))  # type: ignore[arg-type]
            state.attempt += 1
            return result

        return _observing(op, observe)


def compose(op: OpT, *middlewares: Middleware) -> OpT:
    """Wrap op with middlewares, first declared = outermost.

    Builds the chain from the innermost middleware outwards, so the first
    middleware observes the final Result of every attempt.
    """
    for mw in reversed(middlewares):
        op = mw(op)  # type: ignore[assignment]
    return op
