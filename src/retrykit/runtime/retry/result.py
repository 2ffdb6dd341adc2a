"""Attempt outcomes for the retry loop.

Every attempt returns a Result telling the loop what to do next:

| Constructor              | terminal | err  | backoff_override |
|--------------------------|----------|------|------------------|
| Continue()               | False    | None | 0                |
| Recover(err)             | False    | err  | 0                |
| RecoverAfter(err, secs)  | False    | err  | secs             |
| RetryAfter(secs)         | False    | None | secs             |
| Abort(err)               | True     | err  | 0                |
| Finish()                 | True     | None | 0                |

A zero override means "use the policy's backoff"; any other value replaces it
for the next sleep only, and a negative one retries immediately.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import StrEnum


class Code(StrEnum):
    """Whether the loop keeps going after an attempt."""
    CONTINUE = "continue"
    STOP = "stop"


@dataclass(frozen=True, slots=True)
class Result:
    """Outcome of one attempt.

    Attributes:
        code: CONTINUE to retry, STOP to end the loop
        backoff_override: Seconds to sleep before the next attempt (0 = use backoff)
        err: Recoverable error when continuing, final error when stopping
    """

    code: Code = Code.CONTINUE
    backoff_override: float = 0.0
    err: Exception | None = None

    @property
    def terminal(self) -> bool:
        return self.code is Code.STOP

    @property
    def succeeded(self) -> bool:
        """Terminal without an error."""
        return self.terminal and self.err is None

    def with_backoff(self, seconds: float) -> Result:
        return replace(self, backoff_override=seconds)

    def mismatch(self, other: Result) -> str | None:
        """Describe how `other` differs from this result, field by field.

        Returns:
            None if both results are equal, otherwise one clause per differing field
        """
        diffs: list[str] = []
        if self.code != other.code:
            diffs.append(f"code: expected {self.code}, actual {other.code}")
        if self.backoff_override != other.backoff_override:
            diffs.append(
                f"backoff_override: expected {self.backoff_override}s, actual {other.backoff_override}s"
            )
        if self.err is not other.err:
            diffs.append(f"err: expected {self.err!r}, actual {other.err!r}")
        return "; ".join(diffs) or None

    def __repr__(self) -> str:
        parts = [self.code.value]
        if self.backoff_override:
            parts.append(f"after={self.backoff_override}s")
        if self.err is not None:
            parts.append(f"err={self.err!r}")
        return f"Result({', '.join(parts)})"


_CONTINUE = Result()
_FINISH = Result(Code.STOP)


# ═════════════════════════════════════════════════════════════════════════════
# Constructor Functions
# ═════════════════════════════════════════════════════════════════════════════


def Continue() -> Result:  # noqa: N802
    """Retry using the computed backoff."""
    return _CONTINUE


def Recover(err: Exception) -> Result:  # noqa: N802
    """Retry, remembering `err` as the last recoverable error."""
    return Result(err=err)


def RecoverAfter(err: Exception, seconds: float) -> Result:  # noqa: N802
    """Retry after `seconds` (negative = immediately), remembering `err`."""
    return Result(backoff_override=seconds, err=err)


def RetryAfter(seconds: float) -> Result:  # noqa: N802
    """Retry after `seconds` instead of the computed backoff."""
    return Result(backoff_override=seconds)


def Abort(err: Exception) -> Result:  # noqa: N802
    """Stop now; `err` is the final error."""
    return Result(Code.STOP, err=err)


def Finish() -> Result:  # noqa: N802
    """Stop now; success."""
    return _FINISH
