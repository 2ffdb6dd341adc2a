"""Cancellation scopes for retry loops.

A CancelScope is the single cancellation signal that flows through one retry
invocation. It can be cancelled explicitly, expire at a deadline, or follow a
parent scope. The retry loop only observes it while sleeping between
attempts; operations that want to stop earlier check `scope.cause` themselves.

Key Features:
    - Explicit cancellation with a caller-supplied cause
    - Deadlines from timeouts, inherited by child scopes
    - Sleep races for threads (`sleep`) and asyncio (`asleep`)
    - No background threads or tasks: deadlines are evaluated lazily

Example:
    >>> scope = CancelScope(timeout=5.0)
    >>> if not scope.sleep(1.0):
    ...     raise scope.cause
"""

from __future__ import annotations

import asyncio
import threading
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable

from retrykit.foundation.errors import Cancelled, DeadlineExceeded

if TYPE_CHECKING:
    from types import TracebackType


def _resolve(waiter: asyncio.Future[None]) -> None:
    if not waiter.done():
        waiter.set_result(None)


@dataclass(slots=True, eq=False)
class CancelScope:
    """Cancellation signal with optional deadline and parent.

    Thread-safe: cancel() may be called from any thread while another thread
    or an event loop is sleeping on the scope.

    Attributes:
        timeout: Seconds from creation until the scope expires (None = no deadline)
        parent: Scope whose cancellation and deadline this scope inherits
    """

    timeout: float | None = None
    parent: CancelScope | None = None
    _deadline: float | None = field(default=None, init=False, repr=False)
    _cause: Exception | None = field(default=None, init=False, repr=False)
    _event: threading.Event = field(default_factory=threading.Event, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _callbacks: list[Callable[[], None]] = field(default_factory=list, init=False, repr=False)

    def __post_init__(self) -> None:
        deadlines = [] if self.timeout is None else [time.monotonic() + self.timeout]
        if self.parent is not None:
            if self.parent.deadline is not None:
                deadlines.append(self.parent.deadline)
            if not self.parent._subscribe(self._on_parent_cancel):
                self.cancel(self.parent.cause)
        self._deadline = min(deadlines) if deadlines else None

    # ─────────────────────────────────────────────────────────────────
    # State
    # ─────────────────────────────────────────────────────────────────

    @property
    def deadline(self) -> float | None:
        """Monotonic timestamp at which the scope expires."""
        return self._deadline

    @property
    def cause(self) -> Exception | None:
        """Why the scope was cancelled, or None while it is live."""
        if self._cause is None and self._deadline is not None and time.monotonic() >= self._deadline:
            self.cancel(DeadlineExceeded())
        return self._cause

    @property
    def cancel_called(self) -> bool:
        """Whether the scope has been cancelled or has expired."""
        return self.cause is not None

    def remaining(self) -> float | None:
        """Seconds left until the deadline (None when there is none)."""
        return None if self._deadline is None else max(self._deadline - time.monotonic(), 0.0)

    def cancel(self, cause: Exception | None = None) -> None:
        """Cancel the scope and its children. Only the first cause is kept."""
        with self._lock:
            if self._cause is not None:
                return
            self._cause = cause if cause is not None else Cancelled()
            callbacks, self._callbacks = self._callbacks, []
            self._event.set()
        for callback in callbacks:
            callback()

    def close(self) -> None:
        """Detach from the parent scope."""
        if self.parent is not None:
            self.parent._unsubscribe(self._on_parent_cancel)

    # ─────────────────────────────────────────────────────────────────
    # Sleeping
    # ─────────────────────────────────────────────────────────────────

    def _limit(self, seconds: float) -> float:
        if self._deadline is None:
            return seconds
        return min(seconds, self._deadline - time.monotonic())

    def sleep(self, seconds: float) -> bool:
        """Block for `seconds` unless the scope is cancelled first.

        Returns:
            True if the full duration elapsed, False if the scope ended first
        """
        if self.cause is not None:
            return False
        if seconds <= 0:
            return True
        limit = self._limit(seconds)
        if self._event.wait(max(limit, 0.0)):
            return False
        if limit < seconds:
            self.cancel(DeadlineExceeded())
            return False
        return True

    async def asleep(self, seconds: float) -> bool:
        """Async counterpart of sleep(); never blocks the event loop."""
        if self.cause is not None:
            return False
        if seconds <= 0:
            return True
        loop = asyncio.get_running_loop()
        waiter: asyncio.Future[None] = loop.create_future()

        def wake() -> None:
            loop.call_soon_threadsafe(_resolve, waiter)

        if not self._subscribe(wake):
            return False
        limit = self._limit(seconds)
        try:
            await asyncio.wait_for(waiter, max(limit, 0.0))
            return False
        except TimeoutError:
            pass
        finally:
            self._unsubscribe(wake)
        if limit < seconds:
            self.cancel(DeadlineExceeded())
            return False
        return True

    # ─────────────────────────────────────────────────────────────────
    # Subscriptions
    # ─────────────────────────────────────────────────────────────────

    def _subscribe(self, callback: Callable[[], None]) -> bool:
        """Register a cancellation callback. False if already cancelled."""
        with self._lock:
            if self._cause is not None:
                return False
            self._callbacks.append(callback)
            return True

    def _unsubscribe(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def _on_parent_cancel(self) -> None:
        assert self.parent is not None
        self.cancel(self.parent.cause)

    # ─────────────────────────────────────────────────────────────────
    # Context managers
    # ─────────────────────────────────────────────────────────────────

    def __enter__(self) -> CancelScope:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    async def __aenter__(self) -> CancelScope:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()
