"""Tests for CancelScope."""

from __future__ import annotations

import asyncio
import threading
import time

import pytest

from retrykit.foundation.errors import Cancelled, DeadlineExceeded
from retrykit.runtime.concurrency import CancelScope


# ═════════════════════════════════════════════════════════════════════════════
# Cancellation
# ═════════════════════════════════════════════════════════════════════════════


def test_live_scope() -> None:
    scope = CancelScope()
    assert scope.cause is None
    assert not scope.cancel_called
    assert scope.deadline is None
    assert scope.remaining() is None


def test_cancel_default_cause() -> None:
    scope = CancelScope()
    scope.cancel()
    assert isinstance(scope.cause, Cancelled)
    assert not isinstance(scope.cause, DeadlineExceeded)


def test_first_cause_wins() -> None:
    scope = CancelScope()
    first = RuntimeError("first")
    scope.cancel(first)
    scope.cancel(RuntimeError("second"))
    assert scope.cause is first


def test_deadline_expires_lazily() -> None:
    scope = CancelScope(timeout=0.01)
    time.sleep(0.02)
    assert isinstance(scope.cause, DeadlineExceeded)
    assert scope.remaining() == 0.0


def test_child_follows_parent() -> None:
    parent = CancelScope()
    child = CancelScope(parent=parent)
    cause = RuntimeError("stop")

    parent.cancel(cause)

    assert child.cause is cause


def test_child_of_cancelled_parent_starts_cancelled() -> None:
    parent = CancelScope()
    parent.cancel()
    assert CancelScope(parent=parent).cancel_called


def test_child_cancel_leaves_parent_live() -> None:
    parent = CancelScope()
    CancelScope(parent=parent).cancel()
    assert not parent.cancel_called


def test_child_inherits_earlier_deadline() -> None:
    parent = CancelScope(timeout=1.0)
    child = CancelScope(timeout=60.0, parent=parent)
    assert child.deadline == parent.deadline


def test_closed_child_detached() -> None:
    parent = CancelScope()
    with CancelScope(parent=parent) as child:
        pass
    parent.cancel()
    assert not child.cancel_called


# ═════════════════════════════════════════════════════════════════════════════
# Sleeping
# ═════════════════════════════════════════════════════════════════════════════


def test_sleep_elapses() -> None:
    assert CancelScope().sleep(0.01)


def test_sleep_non_positive_returns_immediately() -> None:
    scope = CancelScope()
    assert scope.sleep(0)
    assert scope.sleep(-1.0)


def test_sleep_on_cancelled_scope() -> None:
    scope = CancelScope()
    scope.cancel()
    assert not scope.sleep(1.0)


def test_sleep_interrupted_by_cancel() -> None:
    scope = CancelScope()
    threading.Timer(0.05, scope.cancel).start()

    start = time.monotonic()
    assert not scope.sleep(5.0)
    assert time.monotonic() - start < 1.0


def test_sleep_cut_short_by_deadline() -> None:
    scope = CancelScope(timeout=0.05)

    start = time.monotonic()
    assert not scope.sleep(5.0)
    assert time.monotonic() - start < 1.0
    assert isinstance(scope.cause, DeadlineExceeded)


@pytest.mark.asyncio
async def test_asleep_elapses() -> None:
    assert await CancelScope().asleep(0.01)


@pytest.mark.asyncio
async def test_asleep_interrupted_by_cancel() -> None:
    scope = CancelScope()
    asyncio.get_running_loop().call_later(0.05, scope.cancel)

    start = time.monotonic()
    assert not await scope.asleep(5.0)
    assert time.monotonic() - start < 1.0
    assert isinstance(scope.cause, Cancelled)


@pytest.mark.asyncio
async def test_asleep_interrupted_from_thread() -> None:
    scope = CancelScope()
    threading.Timer(0.05, scope.cancel).start()
    assert not await scope.asleep(5.0)


@pytest.mark.asyncio
async def test_asleep_cut_short_by_deadline() -> None:
    async with CancelScope(timeout=0.05) as scope:
        assert not await scope.asleep(5.0)
    assert isinstance(scope.cause, DeadlineExceeded)
