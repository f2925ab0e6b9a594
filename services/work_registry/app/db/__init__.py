"""Database models and repository."""

from services.work_registry.app.db.models import (
    ActorModel,
    AuthorshipModel,
    CollectionModel,
    FileResourceModel,
    FileVersionMembershipModel,
    WorkModel,
    WorkVersionModel,
)
from services.work_registry.app.db.repository import WorkRepository

__all__ = [
    "ActorModel",
    "AuthorshipModel",
    "CollectionModel",
    "FileResourceModel",
    "FileVersionMembershipModel",
    "WorkModel",
    "WorkVersionModel",
    "WorkRepository",
]
