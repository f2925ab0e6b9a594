"""Shared Pydantic schemas for the work registry."""

from shared.schemas.creator import CreatorSchema
from shared.schemas.events import BaseEvent, WorkIndexRequestedEvent
from shared.schemas.work import (
    FileMembershipSchema,
    MergeOutcomeSchema,
    VersionState,
    Visibility,
    WorkSummary,
    WorkType,
    WorkVersionSummary,
)

__all__ = [
    "BaseEvent",
    "CreatorSchema",
    "FileMembershipSchema",
    "MergeOutcomeSchema",
    "VersionState",
    "Visibility",
    "WorkIndexRequestedEvent",
    "WorkSummary",
    "WorkType",
    "WorkVersionSummary",
]
