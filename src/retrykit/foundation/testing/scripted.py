"""Scripted operations for retry loop testing.

Provides ScriptedOperation for:
- Returning a fixed sequence of Results, one per attempt
- Simulating slow attempts with a per-step duration
- Recording invocations (timestamps, scope) for verification
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from retrykit.runtime.retry import Result

if TYPE_CHECKING:
    from retrykit.runtime.concurrency import CancelScope


@dataclass(frozen=True, slots=True)
class ScriptedStep:
    """One scripted attempt: spend `duration` seconds, then return `result`."""
    result: Result
    duration: float = 0.0


@dataclass(slots=True)
class Invocation:
    """Record of a single attempt."""
    started_at: float
    scope: CancelScope | None = None


@dataclass
class ScriptedOperation:
    """Operation replaying scripted Results in order.

    Usable with every retry entry point: call it with no argument or with the
    cancel scope, sync via __call__ or async via acall. Running past the end of
    the script fails the test with AssertionError.

    Example:
        >>> op = ScriptedOperation.of(Continue(), Finish())
        >>> Policy(backoff=Plain(0.0), retry_count=3).retry(op)
        >>> op.call_count
        2
    """

    steps: list[ScriptedStep]
    invocations: list[Invocation] = field(default_factory=list)

    @classmethod
    def of(cls, *results: Result, duration: float = 0.0) -> ScriptedOperation:
        return cls([ScriptedStep(r, duration) for r in results])

    @property
    def call_count(self) -> int:
        return len(self.invocations)

    @property
    def exhausted(self) -> bool:
        """Whether every scripted step has been played."""
        return self.call_count >= len(self.steps)

    def _next(self, scope: CancelScope | None) -> ScriptedStep:
        if self.exhausted:
            raise AssertionError(
                f"ScriptedOperation called {self.call_count + 1} times, only {len(self.steps)} steps scripted"
            )
        self.invocations.append(Invocation(time.monotonic(), scope))
        return self.steps[self.call_count - 1]

    def __call__(self, scope: CancelScope | None = None) -> Result:
        step = self._next(scope)
        if step.duration > 0:
            time.sleep(step.duration)
        return step.result

    async def acall(self, scope: CancelScope | None = None) -> Result:
        step = self._next(scope)
        if step.duration > 0:
            await asyncio.sleep(step.duration)
        return step.result

    def gaps(self) -> list[float]:
        """Seconds between consecutive attempt starts."""
        starts = [i.started_at for i in self.invocations]
        return [b - a for a, b in zip(starts, starts[1:])]


def assert_result_equal(expected: Result, actual: Result) -> None:
    """Assert two Results are equal, naming every differing field."""
    if (diff := expected.mismatch(actual)) is not None:
        raise AssertionError(f"results differ: {diff}")
