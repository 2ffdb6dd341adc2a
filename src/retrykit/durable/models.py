"""Records and storage contract for durable requests.

Uses Pydantic models for validation/serialization. All records are frozen:
storage implementations persist them, they never mutate them.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Protocol, runtime_checkable
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

_RECORD_CONFIG = ConfigDict(frozen=True, extra="forbid", revalidate_instances="never")


def utcnow() -> datetime:
    return datetime.now(UTC)


class CreatedRequest(BaseModel):
    """A new request accepted for durable processing."""

    model_config = _RECORD_CONFIG

    request_id: UUID
    content: bytes
    created_at: datetime = Field(default_factory=utcnow)


class Request(BaseModel):
    """A pending request as returned by storage."""

    model_config = _RECORD_CONFIG

    request_id: UUID
    content: bytes


class AbortedRequest(BaseModel):
    """Final disposition of a request that gave up.

    Attributes:
        error: Message of the error that ended processing
    """

    model_config = _RECORD_CONFIG

    request_id: UUID
    error: Annotated[str, Field(min_length=1)]
    aborted_at: datetime = Field(default_factory=utcnow)


class CompletedRequest(BaseModel):
    """Final disposition of a request that succeeded."""

    model_config = _RECORD_CONFIG

    request_id: UUID
    completed_at: datetime = Field(default_factory=utcnow)


class Attempt(BaseModel):
    """One recorded attempt. `error` is None for attempts without an error."""

    model_config = _RECORD_CONFIG

    request_id: UUID
    error: str | None = None
    created_at: datetime = Field(default_factory=utcnow)


class Pagination(BaseModel):
    model_config = _RECORD_CONFIG

    offset: Annotated[int, Field(ge=0)] = 0
    limit: Annotated[int, Field(ge=1)] = 100


@runtime_checkable
class Storage(Protocol):
    """Persistence for durable requests and their attempts."""

    async def create_request(self, created: CreatedRequest) -> None: ...

    async def get_pending_requests(self, pagination: Pagination) -> list[Request]: ...

    async def last_request_attempt_number(self, request_id: UUID) -> int:
        """Number of the latest recorded attempt, 0 if none."""
        ...

    async def insert_request_attempt(self, attempt: Attempt) -> int:
        """Record an attempt and return its number (1 for the first)."""
        ...

    async def mark_request_as_aborted(self, aborted: AbortedRequest) -> None: ...

    async def mark_request_as_completed(self, completed: CompletedRequest) -> None: ...
