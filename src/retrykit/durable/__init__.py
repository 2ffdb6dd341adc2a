"""Durable request processing on top of the retry loop.

- DurableRetry: Retries stored requests, persisting attempts and dispositions
- Storage: Persistence protocol implemented by backends
- Record models: CreatedRequest, Request, Attempt, AbortedRequest, CompletedRequest, Pagination
"""

from .models import (
    AbortedRequest,
    Attempt,
    CompletedRequest,
    CreatedRequest,
    Pagination,
    Request,
    Storage,
)
from .processor import DurableRetry, RequestHandler

__all__ = [
    "DurableRetry", "RequestHandler", "Storage",
    "CreatedRequest", "Request", "Attempt", "AbortedRequest", "CompletedRequest", "Pagination",
]
