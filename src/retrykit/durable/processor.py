"""Durable retries: every attempt and final disposition is persisted.

DurableRetry drives the retry loop for stored requests, records each attempt
through a Storage, and marks the request completed or aborted when the loop
ends. Because attempts are persisted, the attempt budget (max_attempts)
survives process restarts: a request resumed later continues counting from
its last recorded attempt.

Example:
    >>> durable = DurableRetry(storage, Policy(backoff=Fibonacci(1.0), retry_count=5), max_attempts=20)
    >>> request_id = await durable.submit(b'{"order": 42}')
    >>> await durable.retry(scope, request_id, deliver)
    >>>
    >>> # Later, e.g. from a worker process
    >>> await durable.process_pending(scope, lambda s, req: deliver_request(s, req))
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Awaitable
from typing import TYPE_CHECKING, Callable, TypeVar

from retrykit.foundation.errors import RetryCountExceeded, StorageError, join_errors
from retrykit.runtime.retry import Abort

from .models import AbortedRequest, Attempt, CompletedRequest, CreatedRequest, Pagination, Request, Storage

if TYPE_CHECKING:
    from uuid import UUID

    from retrykit.foundation.config import RetryKitSettings
    from retrykit.runtime.concurrency import CancelScope
    from retrykit.runtime.retry import AsyncFuncScoped, MiddlewarePolicy, Policy, Result

T = TypeVar("T")

logger = logging.getLogger("retrykit.durable")

RequestHandler = Callable[["CancelScope", Request], Awaitable["Result"]]


class DurableRetry:
    """Retry loop with persisted attempts and dispositions.

    max_attempts caps the total number of recorded attempts per request, counted
    across every retry() of that request. The attempt whose number reaches the cap
    aborts unless it already ended the loop (finished or aborted on its own).

    Args:
        storage: Storage backend
        policy: Policy driving each retry invocation
        max_attempts: Total recorded attempts allowed per request
            (None = only the policy's budget applies)
        worker_count: Requests processed concurrently by process_pending
        page_size: Pending requests fetched per storage call
        log: Logger (defaults to retrykit.durable)
    """

    __slots__ = ("_storage", "_policy", "max_attempts", "worker_count", "page_size", "_log")

    def __init__(
        self,
        storage: Storage,
        policy: Policy | MiddlewarePolicy,
        *,
        max_attempts: int | None = None,
        worker_count: int = 1,
        page_size: int = 100,
        log: logging.Logger | None = None,
    ) -> None:
        if max_attempts is not None and max_attempts < 1:
            raise ValueError(f"max_attempts must be positive, got {max_attempts}")
        if worker_count < 1 or page_size < 1:
            raise ValueError("worker_count and page_size must be positive")
        self._storage = storage
        self._policy = policy
        self.max_attempts = max_attempts
        self.worker_count = worker_count
        self.page_size = page_size
        self._log = log or logger

    @classmethod
    def from_settings(cls, storage: Storage, settings: RetryKitSettings | None = None) -> DurableRetry:
        """Build from RetrySettings (policy) and DurableSettings (limits)."""
        from retrykit.foundation.config import get_settings

        settings = settings or get_settings()
        return cls(
            storage,
            settings.retry.build_policy(),
            max_attempts=settings.durable.max_attempts,
            worker_count=settings.durable.worker_count,
            page_size=settings.durable.page_size,
        )

    def _exceeded(self, attempt_number: int) -> bool:
        return self.max_attempts is not None and attempt_number >= self.max_attempts

    async def _call(self, op: str, call: Awaitable[T], request_id: UUID | None = None) -> T:
        """Await a storage call with start/finish logging; failures become StorageError."""
        tag = f"[{op}]" if request_id is None else f"[{op}] request_id={request_id}"
        self._log.info(f"{tag} started")
        try:
            value = await call
        except Exception as e:
            self._log.error(f"{tag} failed: {e}")
            raise StorageError(op, e) from e
        self._log.info(f"{tag} finished")
        return value

    # ─────────────────────────────────────────────────────────────────
    # Requests
    # ─────────────────────────────────────────────────────────────────

    async def submit(self, content: bytes, request_id: UUID | None = None) -> UUID:
        """Store a new request and return its id."""
        created = CreatedRequest(request_id=request_id or uuid.uuid4(), content=content)
        await self._call("storage.CreateRequest", self._storage.create_request(created), created.request_id)
        return created.request_id

    async def retry(
        self,
        scope: CancelScope,
        request_id: UUID,
        op: AsyncFuncScoped,
    ) -> CompletedRequest | AbortedRequest:
        """Run op under the policy, recording every attempt.

        Returns:
            The disposition written to storage

        Raises:
            StorageError: Reading the attempt count or writing the disposition failed
        """
        last = await self._call(
            "storage.LastRequestAttemptNumber",
            self._storage.last_request_attempt_number(request_id),
            request_id,
        )
        if self._exceeded(last):
            self._log.error(
                f"[checkRetryExceeded] request_id={request_id} retry count exceeded "
                f"(attempt {last}, max {self.max_attempts})"
            )
            return await self._abort(request_id, RetryCountExceeded())

        try:
            await self._policy.aretry_scoped(scope, self._recording(request_id, op))
        except Exception as e:
            return await self._abort(request_id, e)
        return await self._complete(request_id)

    def _recording(self, request_id: UUID, op: AsyncFuncScoped) -> AsyncFuncScoped:
        async def attempt(scope: CancelScope) -> Result:
            result = await op(scope)
            record = Attempt(request_id=request_id, error=None if result.err is None else str(result.err))
            tag = f"[storage.InsertRequestAttempt] request_id={request_id}"

            self._log.info(f"{tag} started")
            try:
                number = await self._storage.insert_request_attempt(record)
            except Exception as e:
                # Unrecorded attempts keep their outcome.
                self._log.error(f"{tag} failed: {e}")
                return result

            if not result.terminal and self._exceeded(number):
                self._log.error(f"{tag} retry count exceeded (attempt {number}, max {self.max_attempts})")
                return Abort(join_errors(RetryCountExceeded(), result.err))  # type: ignore[arg-type]
            self._log.info(f"{tag} finished attempt_number={number}")
            return result

        return attempt

    async def _abort(self, request_id: UUID, error: Exception) -> AbortedRequest:
        aborted = AbortedRequest(request_id=request_id, error=str(error) or type(error).__name__)
        await self._call("storage.MarkRequestAsAborted", self._storage.mark_request_as_aborted(aborted), request_id)
        return aborted

    async def _complete(self, request_id: UUID) -> CompletedRequest:
        completed = CompletedRequest(request_id=request_id)
        await self._call("storage.MarkRequestAsCompleted", self._storage.mark_request_as_completed(completed), request_id)
        return completed

    # ─────────────────────────────────────────────────────────────────
    # Batch processing
    # ─────────────────────────────────────────────────────────────────

    async def pending(self) -> list[Request]:
        """All pending requests, fetched page by page."""
        requests: list[Request] = []
        while True:
            page = await self._call(
                "storage.GetPendingRequests",
                self._storage.get_pending_requests(Pagination(offset=len(requests), limit=self.page_size)),
            )
            requests.extend(page)
            if len(page) < self.page_size:
                return requests

    async def process_pending(self, scope: CancelScope, handler: RequestHandler) -> int:
        """Retry every pending request with at most worker_count in flight.

        Stops starting new requests once the scope is cancelled. Every started
        request runs to completion before this returns, even when others fail.

        Returns:
            Number of requests that reached a disposition

        Raises:
            StorageError: A request's storage call failed (several are joined
                into a JoinedError)
        """
        requests = await self.pending()
        limiter = asyncio.Semaphore(self.worker_count)

        async def process(request: Request) -> bool:
            async with limiter:
                if scope.cancel_called:
                    return False
                await self.retry(scope, request.request_id, lambda s: handler(s, request))
                return True

        outcomes = await asyncio.gather(*(process(r) for r in requests), return_exceptions=True)
        if failures := [o for o in outcomes if isinstance(o, Exception)]:
            self._log.error(f"[processPending] {len(failures)} of {len(requests)} requests failed")
            raise join_errors(*failures)  # type: ignore[misc]
        return sum(o is True for o in outcomes)
