"""Backoff strategies for retry policies.

A backoff is any callable mapping a 0-indexed retry attempt to a delay in
seconds (first retry = attempt 0). Strategies hold no mutable state, so one
instance can be shared by any number of concurrent retry loops.

- Plain: Fixed delay
- Arithmetic: Linear growth, initial + delta * attempt
- Fibonacci: base * fib(attempt + 1), i.e. 1, 1, 2, 3, 5, 8, ... times base

There is no built-in jitter; layer it by wrapping a strategy:
    >>> jittered = lambda attempt: Fibonacci(0.5)(attempt) * random.uniform(0.8, 1.2)
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, TypeAlias

Backoff: TypeAlias = Callable[[int], float]


@lru_cache(maxsize=256)
def fibonacci(n: int) -> int:
    """Iterative Fibonacci number with fib(0) = 0, fib(1) = 1."""
    if n < 0:
        raise ValueError(f"fibonacci index must be non-negative, got {n}")
    prev, curr = 0, 1
    for _ in range(n):
        prev, curr = curr, prev + curr
    return prev


def _check(attempt: int) -> None:
    if attempt < 0:
        raise ValueError(f"attempt must be non-negative, got {attempt}")


@dataclass(frozen=True, slots=True)
class Plain:
    """Fixed delay between retries.

    Attributes:
        delay: Delay in seconds (0 or negative = retry immediately)
    """

    delay: float = 1.0

    def __call__(self, attempt: int) -> float:
        _check(attempt)
        return self.delay


@dataclass(frozen=True, slots=True)
class Arithmetic:
    """Arithmetic progression.

    Delay = initial + delta * attempt

    Attributes:
        initial: Delay before the first retry in seconds
        delta: Added per attempt
    """

    initial: float = 1.0
    delta: float = 1.0

    def __call__(self, attempt: int) -> float:
        _check(attempt)
        return self.initial + self.delta * attempt


@dataclass(frozen=True, slots=True)
class Fibonacci:
    """Fibonacci progression scaled by `base` seconds."""

    base: float = 1.0

    def __call__(self, attempt: int) -> float:
        _check(attempt)
        return self.base * fibonacci(attempt + 1)


NO_BACKOFF = Plain(0.0)
