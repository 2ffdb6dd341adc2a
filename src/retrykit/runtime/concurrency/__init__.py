"""Cancellation primitives for retry loops.

Key Components:
    - CancelScope: Cancellation signal with cause, deadline and parent chaining

Example:
    >>> from retrykit.runtime.concurrency import CancelScope
    >>> with CancelScope(timeout=30.0) as scope:
    ...     policy.retry_scoped(scope, operation)
"""

from __future__ import annotations

from .scope import CancelScope

__all__ = ["CancelScope"]
