"""Error types produced by the retry loop and its consumers.

Errors are composed, not wrapped: when the loop ends with both a terminal
signal (exhaustion, cancellation) and a pending recoverable error, the two are
joined into a JoinedError so callers can inspect both with `except*` or
`is_error`.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Self


class RetryKitError(Exception):
    """Base class for all retrykit errors."""


class RetryCountExceeded(RetryKitError):
    """Retry budget exhausted while attempts were still non-terminal."""

    def __init__(self, message: str = "retry count exceeded") -> None:
        super().__init__(message)


class Cancelled(RetryKitError):
    """Default cause of an explicitly cancelled scope."""

    def __init__(self, message: str = "scope cancelled") -> None:
        super().__init__(message)


class DeadlineExceeded(Cancelled):
    """Cause of a scope whose deadline passed."""

    def __init__(self, message: str = "scope deadline exceeded") -> None:
        super().__init__(message)


class StorageError(RetryKitError):
    """Durable storage operation failed.

    Attributes:
        op: Name of the failing storage operation (e.g. "storage.InsertRequestAttempt")
    """

    def __init__(self, op: str, error: BaseException) -> None:
        super().__init__(f"{op}: {error}")
        self.op = op
        self.error = error


class JoinedError(ExceptionGroup):
    """Flat composition of independent errors.

    Unlike a wrapped error, every member is a peer: the first is usually the
    signal that ended the loop, the rest the context it ended with.

    Example:
        >>> err = JoinedError([RetryCountExceeded(), ValueError("bad gateway")])
        >>> print(err)
        retry count exceeded
        bad gateway
    """

    def __new__(cls, errors: Sequence[Exception]) -> Self:
        return super().__new__(cls, "\n".join(str(e) for e in errors), list(errors))

    def __init__(self, errors: Sequence[Exception]) -> None:
        super().__init__("\n".join(str(e) for e in errors), list(errors))

    def __str__(self) -> str:
        return self.message

    def derive(self, excs: Sequence[Exception]) -> JoinedError:  # type: ignore[override]
        return JoinedError(excs)

    @property
    def errors(self) -> tuple[Exception, ...]:
        return self.exceptions


def join_errors(*errors: Exception | None) -> Exception | None:
    """Join errors, discarding Nones.

    Returns None when nothing remains, the error itself when only one does,
    and a JoinedError otherwise.
    """
    present = [e for e in errors if e is not None]
    if not present:
        return None
    if len(present) == 1:
        return present[0]
    return JoinedError(present)


def is_error(err: BaseException | None, target: BaseException | type[BaseException]) -> bool:
    """Check whether err, or anything joined into or chained under it, matches target.

    A type target matches by isinstance, an instance target by identity. Members of
    exception groups and explicit `__cause__` links are searched depth first.
    """
    match = (lambda e: e is target) if isinstance(target, BaseException) else (lambda e: isinstance(e, target))
    seen: set[int] = set()
    stack = [err]
    while stack:
        current = stack.pop()
        if current is None or id(current) in seen:
            continue
        seen.add(id(current))
        if match(current):
            return True
        if isinstance(current, BaseExceptionGroup):
            stack.extend(current.exceptions)
        stack.append(current.__cause__)
    return False
