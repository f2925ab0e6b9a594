"""SQLAlchemy models for the Work Registry."""

from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from shared.schemas.work import VersionState, Visibility, WorkType


def utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONList = JSON().with_variant(JSONB(), "postgresql")


def _enum(enum_cls: type, name: str) -> Enum:
    return Enum(enum_cls, name=name, values_callable=lambda x: [e.value for e in x])


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""

    pass


collection_work_memberships = Table(
    "collection_work_memberships",
    Base.metadata,
    Column(
        "collection_id",
        Integer,
        ForeignKey("collections.collection_id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "work_id",
        Integer,
        ForeignKey("works.work_id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("created_at", DateTime(timezone=True), default=utc_now, nullable=False),
)


class ActorModel(Base):
    """A person who deposits works or is credited as a creator."""

    __tablename__ = "actors"

    actor_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    uuid: Mapped[UUID] = mapped_column(Uuid, default=uuid4, unique=True, nullable=False)
    given_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    surname: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    orcid: Mapped[str | None] = mapped_column(String(32), unique=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )

    @property
    def display_name(self) -> str:
        if self.given_name:
            return f"{self.given_name} {self.surname}"
        return self.surname


class WorkModel(Base):
    """SQLAlchemy model for the works table (the deposited-item aggregate)."""

    __tablename__ = "works"

    work_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    uuid: Mapped[UUID] = mapped_column(Uuid, default=uuid4, unique=True, nullable=False)
    work_type: Mapped[WorkType | None] = mapped_column(
        _enum(WorkType, "work_type"),
        nullable=True,
    )
    visibility: Mapped[Visibility | None] = mapped_column(
        _enum(Visibility, "visibility"),
        default=Visibility.OPEN,
        nullable=True,
    )
    doi: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    depositor_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("actors.actor_id"),
        nullable=True,
    )
    discover_users: Mapped[list[str]] = mapped_column(JSONList, default=list, nullable=False)
    discover_groups: Mapped[list[str]] = mapped_column(JSONList, default=list, nullable=False)
    edit_users: Mapped[list[str]] = mapped_column(JSONList, default=list, nullable=False)
    edit_groups: Mapped[list[str]] = mapped_column(JSONList, default=list, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )

    # Relationships
    depositor: Mapped["ActorModel | None"] = relationship("ActorModel")
    versions: Mapped[list["WorkVersionModel"]] = relationship(
        "WorkVersionModel",
        back_populates="work",
        cascade="all, delete-orphan",
        order_by="WorkVersionModel.version_number",
    )

    __table_args__ = (Index("idx_works_depositor_id", "depositor_id"),)

    @property
    def latest_version(self) -> "WorkVersionModel | None":
        if not self.versions:
            return None
        return max(self.versions, key=lambda version: version.version_number)

    @property
    def draft_versions(self) -> list["WorkVersionModel"]:
        return [v for v in self.versions if v.state == VersionState.DRAFT]


class WorkVersionModel(Base):
    """SQLAlchemy model for work_versions: one metadata snapshot plus its files."""

    __tablename__ = "work_versions"

    version_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    uuid: Mapped[UUID] = mapped_column(Uuid, default=uuid4, unique=True, nullable=False)
    work_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("works.work_id", ondelete="CASCADE"),
        nullable=False,
    )
    version_number: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    state: Mapped[VersionState] = mapped_column(
        _enum(VersionState, "version_state"),
        default=VersionState.DRAFT,
        nullable=False,
    )
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    subtitle: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    publisher_statement: Mapped[str | None] = mapped_column(Text, nullable=True)
    rights: Mapped[str | None] = mapped_column(String(255), nullable=True)
    version_name: Mapped[str | None] = mapped_column(String(64), nullable=True)
    published_date: Mapped[str | None] = mapped_column(String(64), nullable=True)
    keyword: Mapped[list[str]] = mapped_column(JSONList, default=list, nullable=False)
    publisher: Mapped[list[str]] = mapped_column(JSONList, default=list, nullable=False)
    subject: Mapped[list[str]] = mapped_column(JSONList, default=list, nullable=False)
    language: Mapped[list[str]] = mapped_column(JSONList, default=list, nullable=False)
    identifier: Mapped[list[str]] = mapped_column(JSONList, default=list, nullable=False)
    based_near: Mapped[list[str]] = mapped_column(JSONList, default=list, nullable=False)
    related_url: Mapped[list[str]] = mapped_column(JSONList, default=list, nullable=False)
    source: Mapped[list[str]] = mapped_column(JSONList, default=list, nullable=False)
    contributor: Mapped[list[str]] = mapped_column(JSONList, default=list, nullable=False)
    doi: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    published_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )

    # Relationships
    work: Mapped["WorkModel"] = relationship("WorkModel", back_populates="versions")
    file_memberships: Mapped[list["FileVersionMembershipModel"]] = relationship(
        "FileVersionMembershipModel",
        back_populates="work_version",
        cascade="all, delete-orphan",
        order_by="FileVersionMembershipModel.membership_id",
    )
    creators: Mapped[list["AuthorshipModel"]] = relationship(
        "AuthorshipModel",
        back_populates="work_version",
        cascade="all, delete-orphan",
        order_by="AuthorshipModel.position",
    )

    __table_args__ = (
        UniqueConstraint("work_id", "version_number", name="uq_work_version_number"),
        Index("idx_work_versions_work_id", "work_id"),
        Index("idx_work_versions_state", "state"),
    )

    @property
    def is_draft(self) -> bool:
        return self.state == VersionState.DRAFT

    @property
    def is_published(self) -> bool:
        return self.state == VersionState.PUBLISHED

    @property
    def file_resources(self) -> list["FileResourceModel"]:
        return [membership.file_resource for membership in self.file_memberships]


class FileResourceModel(Base):
    """A stored binary payload; shared by reference across versions."""

    __tablename__ = "file_resources"

    file_resource_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    uuid: Mapped[UUID] = mapped_column(Uuid, default=uuid4, unique=True, nullable=False)
    original_filename: Mapped[str] = mapped_column(String(1024), nullable=False)
    content_type: Mapped[str | None] = mapped_column(String(255), nullable=True)
    size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    storage_key: Mapped[str] = mapped_column(String(1024), nullable=False)
    derivatives: Mapped[dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        default=dict,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )


class FileVersionMembershipModel(Base):
    """Join between a version and a file, carrying the per-version file title."""

    __tablename__ = "file_version_memberships"

    membership_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    work_version_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("work_versions.version_id", ondelete="CASCADE"),
        nullable=False,
    )
    file_resource_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("file_resources.file_resource_id", ondelete="RESTRICT"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(1024), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )

    # Relationships
    work_version: Mapped["WorkVersionModel"] = relationship(
        "WorkVersionModel",
        back_populates="file_memberships",
    )
    file_resource: Mapped["FileResourceModel"] = relationship("FileResourceModel")

    __table_args__ = (
        UniqueConstraint("work_version_id", "title", name="uq_file_title_per_version"),
        Index("idx_file_memberships_file_resource_id", "file_resource_id"),
    )


class AuthorshipModel(Base):
    """Positional creator credit owned by exactly one version or collection."""

    __tablename__ = "authorships"

    authorship_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    work_version_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("work_versions.version_id", ondelete="CASCADE"),
        nullable=True,
    )
    collection_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("collections.collection_id", ondelete="CASCADE"),
        nullable=True,
    )
    actor_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("actors.actor_id"),
        nullable=True,
    )
    display_name: Mapped[str] = mapped_column(String(512), nullable=False)
    given_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    surname: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    orcid: Mapped[str | None] = mapped_column(String(32), nullable=True)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Relationships
    work_version: Mapped["WorkVersionModel | None"] = relationship(
        "WorkVersionModel",
        back_populates="creators",
    )
    collection: Mapped["CollectionModel | None"] = relationship(
        "CollectionModel",
        back_populates="creators",
    )

    __table_args__ = (
        CheckConstraint(
            "(work_version_id IS NULL) <> (collection_id IS NULL)",
            name="ck_authorship_single_owner",
        ),
        Index("idx_authorships_work_version_id", "work_version_id"),
        Index("idx_authorships_collection_id", "collection_id"),
    )

    def duplicate(self, position: int | None = None) -> "AuthorshipModel":
        """Copy this credit into a new, unowned row."""
        return AuthorshipModel(
            actor_id=self.actor_id,
            display_name=self.display_name,
            given_name=self.given_name,
            surname=self.surname,
            email=self.email,
            orcid=self.orcid,
            position=self.position if position is None else position,
        )


class CollectionModel(Base):
    """SQLAlchemy model for collections, a named grouping of works."""

    __tablename__ = "collections"

    collection_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    uuid: Mapped[UUID] = mapped_column(Uuid, default=uuid4, unique=True, nullable=False)
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    subtitle: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    published_date: Mapped[str | None] = mapped_column(String(64), nullable=True)
    keyword: Mapped[list[str]] = mapped_column(JSONList, default=list, nullable=False)
    publisher: Mapped[list[str]] = mapped_column(JSONList, default=list, nullable=False)
    subject: Mapped[list[str]] = mapped_column(JSONList, default=list, nullable=False)
    language: Mapped[list[str]] = mapped_column(JSONList, default=list, nullable=False)
    identifier: Mapped[list[str]] = mapped_column(JSONList, default=list, nullable=False)
    based_near: Mapped[list[str]] = mapped_column(JSONList, default=list, nullable=False)
    related_url: Mapped[list[str]] = mapped_column(JSONList, default=list, nullable=False)
    source: Mapped[list[str]] = mapped_column(JSONList, default=list, nullable=False)
    contributor: Mapped[list[str]] = mapped_column(JSONList, default=list, nullable=False)
    visibility: Mapped[Visibility | None] = mapped_column(
        _enum(Visibility, "visibility"),
        nullable=True,
    )
    doi: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    depositor_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("actors.actor_id"),
        nullable=True,
    )
    discover_users: Mapped[list[str]] = mapped_column(JSONList, default=list, nullable=False)
    discover_groups: Mapped[list[str]] = mapped_column(JSONList, default=list, nullable=False)
    edit_users: Mapped[list[str]] = mapped_column(JSONList, default=list, nullable=False)
    edit_groups: Mapped[list[str]] = mapped_column(JSONList, default=list, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )

    # Relationships
    works: Mapped[list["WorkModel"]] = relationship(
        "WorkModel",
        secondary=collection_work_memberships,
        order_by="WorkModel.work_id",
    )
    creators: Mapped[list["AuthorshipModel"]] = relationship(
        "AuthorshipModel",
        back_populates="collection",
        cascade="all, delete-orphan",
        order_by="AuthorshipModel.position",
    )
