"""Work, version and collection schema models."""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from shared.schemas.creator import CreatorSchema


class VersionState(str, Enum):
    """Lifecycle state of a work version."""

    DRAFT = "draft"
    PUBLISHED = "published"


class Visibility(str, Enum):
    """Who may discover and download a work."""

    OPEN = "open"
    AUTHENTICATED = "authenticated"
    RESTRICTED = "restricted"


class WorkType(str, Enum):
    """Kind of scholarly artifact a work holds."""

    ARTICLE = "article"
    AUDIO = "audio"
    BOOK = "book"
    CONFERENCE_PROCEEDING = "conference_proceeding"
    DATASET = "dataset"
    DISSERTATION = "dissertation"
    IMAGE = "image"
    MASTERS_THESIS = "masters_thesis"
    OTHER = "other"
    POSTER = "poster"
    PRESENTATION = "presentation"
    REPORT = "report"
    SOFTWARE_OR_PROGRAM_CODE = "software_or_program_code"
    THESIS = "thesis"
    VIDEO = "video"


class FileMembershipSchema(BaseModel):
    """A file attached to a version, with its per-version display title."""

    model_config = ConfigDict(from_attributes=True)

    file_resource_id: int
    title: str


class WorkVersionSummary(BaseModel):
    """Descriptive snapshot of one version."""

    model_config = ConfigDict(from_attributes=True)

    version_id: int
    uuid: UUID
    version_number: int
    state: VersionState
    title: Optional[str] = None
    description: Optional[str] = None
    rights: Optional[str] = None
    published_date: Optional[str] = None
    keyword: list[str] = Field(default_factory=list)
    doi: Optional[str] = None
    creators: list[CreatorSchema] = Field(default_factory=list)
    file_memberships: list[FileMembershipSchema] = Field(default_factory=list)


class WorkSummary(BaseModel):
    """A work with its versions, as reported to administrators."""

    model_config = ConfigDict(from_attributes=True)

    work_id: int
    uuid: UUID
    work_type: Optional[WorkType] = None
    visibility: Optional[Visibility] = None
    doi: Optional[str] = None
    versions: list[WorkVersionSummary] = Field(default_factory=list)
    created_at: Optional[datetime] = None


class MergeOutcomeSchema(BaseModel):
    """Serializable form of a collection merge outcome."""

    successful: bool
    errors: list[str] = Field(default_factory=list)
    work: Optional[WorkSummary] = None
