"""Event schemas for SQS messaging."""

from datetime import datetime, timezone
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


class BaseEvent(BaseModel):
    """Base event schema."""

    correlation_id: str = Field(..., description="Request correlation ID for tracing")
    timestamp: datetime = Field(default_factory=utc_now)


class WorkIndexRequestedEvent(BaseEvent):
    """Event asking the search indexer to (re)index a work."""

    event_type: Literal["WorkIndexRequested"] = "WorkIndexRequested"
    work_id: int
    work_uuid: UUID
    reason: Literal["merge", "doi", "publish"] = Field(
        ..., description="What changed on the work"
    )
