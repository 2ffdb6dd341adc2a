"""Retry executor and policies.

The loop calls the operation once, then keeps calling it while it returns
non-terminal results, sleeping between attempts:

1. Terminal result: stop. Success returns None, Abort(err) raises err as is.
2. Non-terminal: sleep for the result's override if non-zero, otherwise for
   backoff(attempt), where attempt counts retries already performed.
   Non-positive durations retry immediately; positive ones race the cancel scope.
3. Budget spent: raise RetryCountExceeded joined with the last recoverable error.
4. Scope ended during a sleep: raise its cause joined with the last recoverable error.

Attempts are strictly sequential and the loop never pre-empts a running
operation; operations observe `scope.cause` themselves if they need to. The
loop itself never logs: every outcome reaches the caller as a return or an
exception, and logging belongs to the layers driving it.

Example:
    >>> policy = Policy(backoff=Fibonacci(0.5), retry_count=5)
    >>> policy.retry(lambda: Finish() if ping() else Continue())
    >>>
    >>> async with CancelScope(timeout=10.0) as scope:
    ...     await policy.aretry_scoped(scope, fetch)
"""

from __future__ import annotations

from collections.abc import Awaitable
from typing import TYPE_CHECKING, Annotated, Callable, TypeAlias

from pydantic import BaseModel, ConfigDict, Field

from retrykit.foundation.errors import RetryCountExceeded, join_errors
from retrykit.runtime.concurrency import CancelScope

from .backoff import Backoff, Plain
from .middleware import Middleware, compose

if TYPE_CHECKING:
    from .result import Result

Func: TypeAlias = Callable[[], "Result"]
FuncScoped: TypeAlias = Callable[[CancelScope], "Result"]
AsyncFunc: TypeAlias = Callable[[], Awaitable["Result"]]
AsyncFuncScoped: TypeAlias = Callable[[CancelScope], Awaitable["Result"]]


def _delay(result: Result, backoff: Backoff | None, attempt: int) -> float:
    if result.backoff_override != 0:
        return result.backoff_override
    return backoff(attempt) if backoff is not None else 0.0


def _exhausted(last_error: Exception | None) -> Exception:
    return join_errors(RetryCountExceeded(), last_error)  # type: ignore[return-value]


def _cancelled(scope: CancelScope, last_error: Exception | None) -> Exception:
    return join_errors(scope.cause, last_error)  # type: ignore[return-value]


def _run(
    scope: CancelScope,
    backoff: Backoff | None,
    retry_count: int | None,
    call: Callable[[], Result],
) -> None:
    """Drive the loop synchronously. retry_count None means no budget."""
    result = call()
    attempt = 0
    last_error: Exception | None = None

    while not result.terminal:
        if result.err is not None:
            last_error = result.err
        if retry_count is not None and attempt >= retry_count:
            raise _exhausted(last_error)

        delay = _delay(result, backoff, attempt)
        if delay > 0 and not scope.sleep(delay):
            raise _cancelled(scope, last_error)

        result = call()
        attempt += 1

    if result.err is not None:
        raise result.err


async def _arun(
    scope: CancelScope,
    backoff: Backoff | None,
    retry_count: int | None,
    call: Callable[[], Awaitable[Result]],
) -> None:
    """Async counterpart of _run."""
    result = await call()
    attempt = 0
    last_error: Exception | None = None

    while not result.terminal:
        if result.err is not None:
            last_error = result.err
        if retry_count is not None and attempt >= retry_count:
            raise _exhausted(last_error)

        delay = _delay(result, backoff, attempt)
        if delay > 0 and not await scope.asleep(delay):
            raise _cancelled(scope, last_error)

        result = await call()
        attempt += 1

    if result.err is not None:
        raise result.err


class Policy(BaseModel):
    """Backoff strategy plus retry budget.

    Holds no per-invocation state, so one policy can serve any number of
    concurrent retries.

    Attributes:
        backoff: Delay strategy, called with the 0-indexed retry attempt
        retry_count: Retries after the first attempt (0 = single attempt)
    """

    model_config = ConfigDict(
        frozen=True,
        arbitrary_types_allowed=True,
        extra="forbid",
        revalidate_instances="never",
    )

    backoff: Backoff = Field(default_factory=Plain)
    retry_count: Annotated[int, Field(ge=0)] = 3

    def retry(self, op: Func) -> None:
        """Run op (no arguments) under a scope that never cancels."""
        _run(CancelScope(), self.backoff, self.retry_count, op)

    def retry_scoped(self, scope: CancelScope, op: FuncScoped) -> None:
        """Run op(scope), stopping early if the scope ends during a sleep."""
        _run(scope, self.backoff, self.retry_count, lambda: op(scope))

    async def aretry(self, op: AsyncFunc) -> None:
        await _arun(CancelScope(), self.backoff, self.retry_count, op)

    async def aretry_scoped(self, scope: CancelScope, op: AsyncFuncScoped) -> None:
        await _arun(scope, self.backoff, self.retry_count, lambda: op(scope))


class MiddlewarePolicy:
    """Policy assembled from middlewares instead of a fixed budget.

    The loop itself has no strategy and no budget: sleeps come only from result
    overrides (e.g. injected by WithBackoff) and termination only from terminal
    results (e.g. produced by WithMaxRetryCount). Without a terminating
    middleware the loop runs until the operation stops it or the scope ends.

    The chain is rebuilt for every invocation, so the policy is reusable even
    though the middlewares keep counters.

    Example:
        >>> policy = MiddlewarePolicy(WithMaxRetryCount(3), WithBackoff(Plain(1.0)))
        >>> policy.retry(op)
    """

    __slots__ = ("_middlewares",)

    def __init__(self, *middlewares: Middleware) -> None:
        self._middlewares = middlewares

    @property
    def middlewares(self) -> tuple[Middleware, ...]:
        return self._middlewares

    def retry(self, op: Func) -> None:
        _run(CancelScope(), None, None, compose(op, *self._middlewares))

    def retry_scoped(self, scope: CancelScope, op: FuncScoped) -> None:
        chain = compose(op, *self._middlewares)
        _run(scope, None, None, lambda: chain(scope))

    async def aretry(self, op: AsyncFunc) -> None:
        await _arun(CancelScope(), None, None, compose(op, *self._middlewares))

    async def aretry_scoped(self, scope: CancelScope, op: AsyncFuncScoped) -> None:
        chain = compose(op, *self._middlewares)
        await _arun(scope, None, None, lambda: chain(scope))

    def __repr__(self) -> str:
        return f"MiddlewarePolicy({', '.join(repr(m) for m in self._middlewares)})"


# ═════════════════════════════════════════════════════════════════════════════
# One-shot entry points
# ═════════════════════════════════════════════════════════════════════════════


def retry(backoff: Backoff, retry_count: int, op: Func) -> None:
    """Retry op with a one-off policy."""
    Policy(backoff=backoff, retry_count=retry_count).retry(op)


def retry_scoped(scope: CancelScope, backoff: Backoff, retry_count: int, op: FuncScoped) -> None:
    Policy(backoff=backoff, retry_count=retry_count).retry_scoped(scope, op)


async def aretry(backoff: Backoff, retry_count: int, op: AsyncFunc) -> None:
    await Policy(backoff=backoff, retry_count=retry_count).aretry(op)


async def aretry_scoped(scope: CancelScope, backoff: Backoff, retry_count: int, op: AsyncFuncScoped) -> None:
    await Policy(backoff=backoff, retry_count=retry_count).aretry_scoped(scope, op)
