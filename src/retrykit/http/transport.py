"""httpx transports that retry requests under a retry policy.

Wrap any transport to re-send requests until the response handler says the
outcome is final:

Example:
    >>> import httpx
    >>> from retrykit.http import RetryTransport
    >>> from retrykit.runtime.retry import Fibonacci, Policy
    >>>
    >>> transport = RetryTransport(Policy(backoff=Fibonacci(0.5), retry_count=4))
    >>> client = httpx.Client(transport=transport)
    >>>
    >>> # Bound the retries of a single request with a cancel scope
    >>> request = client.build_request("GET", "https://api.example.com/items")
    >>> request.extensions[SCOPE_EXTENSION] = CancelScope(timeout=10.0)
    >>> response = client.send(request)

Superseded responses are closed before the next attempt. Request bodies must be
replayable (bytes content, not one-shot streams).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from retrykit.runtime.concurrency import CancelScope

from .classify import ResponseHandler, default_handle_response

if TYPE_CHECKING:
    from retrykit.runtime.retry import MiddlewarePolicy, Policy, Result

logger = logging.getLogger("retrykit.http")

# Request extension carrying the CancelScope for that request's retries.
SCOPE_EXTENSION = "retry_scope"


def _scope_of(request: httpx.Request) -> CancelScope:
    scope = request.extensions.get(SCOPE_EXTENSION)
    return scope if isinstance(scope, CancelScope) else CancelScope()


def _log_attempt(request: httpx.Request, response: httpx.Response | None, error: Exception | None, result: Result) -> None:
    outcome = f"{type(error).__name__}: {error}" if error is not None else f"status {response.status_code}"  # type: ignore[union-attr]
    if result.terminal:
        logger.debug(f"[{request.method} {request.url}] {outcome}, done")
    else:
        logger.warning(f"[{request.method} {request.url}] {outcome}, retrying")


class RetryTransport(httpx.BaseTransport):
    """Sync transport re-sending requests through a retry policy.

    Args:
        policy: Policy or MiddlewarePolicy driving the retries
        transport: Wrapped transport (default: httpx.HTTPTransport())
        handle_response: Maps (scope, response, error) to a Result
            (default: default_handle_response)

    Raises from handle_request:
        The policy's error (exhaustion, cancellation, or the aborting error)
    """

    def __init__(
        self,
        policy: Policy | MiddlewarePolicy,
        transport: httpx.BaseTransport | None = None,
        handle_response: ResponseHandler | None = None,
    ) -> None:
        self._policy = policy
        self._transport = transport or httpx.HTTPTransport()
        self._handle_response = handle_response or default_handle_response

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        response: httpx.Response | None = None

        def attempt(scope: CancelScope) -> Result:
            nonlocal response
            if response is not None:
                response.close()
                response = None
            try:
                response = self._transport.handle_request(request)
            except httpx.TransportError as e:
                result = self._handle_response(scope, None, e)
                _log_attempt(request, None, e, result)
                return result
            result = self._handle_response(scope, response, None)
            _log_attempt(request, response, None, result)
            return result

        try:
            self._policy.retry_scoped(_scope_of(request), attempt)
        except Exception:
            if response is not None:
                response.close()
            raise
        if response is None:
            raise RuntimeError("response handler finished the retry without a response")
        return response

    def close(self) -> None:
        self._transport.close()


class AsyncRetryTransport(httpx.AsyncBaseTransport):
    """Async counterpart of RetryTransport.

    Args:
        policy: Policy or MiddlewarePolicy driving the retries
        transport: Wrapped transport (default: httpx.AsyncHTTPTransport())
        handle_response: Maps (scope, response, error) to a Result
    """

    def __init__(
        self,
        policy: Policy | MiddlewarePolicy,
        transport: httpx.AsyncBaseTransport | None = None,
        handle_response: ResponseHandler | None = None,
    ) -> None:
        self._policy = policy
        self._transport = transport or httpx.AsyncHTTPTransport()
        self._handle_response = handle_response or default_handle_response

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        response: httpx.Response | None = None

        async def attempt(scope: CancelScope) -> Result:
            nonlocal response
            if response is not None:
                await response.aclose()
                response = None
            try:
                response = await self._transport.handle_async_request(request)
            except httpx.TransportError as e:
                result = self._handle_response(scope, None, e)
                _log_attempt(request, None, e, result)
                return result
            result = self._handle_response(scope, response, None)
            _log_attempt(request, response, None, result)
            return result

        try:
            await self._policy.aretry_scoped(_scope_of(request), attempt)
        except Exception:
            if response is not None:
                await response.aclose()
            raise
        if response is None:
            raise RuntimeError("response handler finished the retry without a response")
        return response

    async def aclose(self) -> None:
        await self._transport.aclose()
