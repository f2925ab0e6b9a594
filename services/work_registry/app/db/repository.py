"""Database repository for work, version and collection operations."""

from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.attributes import set_committed_value

from services.work_registry.app.core.state_machine import VersionStateMachine
from services.work_registry.app.core.validation import validate_work_version
from services.work_registry.app.db.models import (
    CollectionModel,
    FileVersionMembershipModel,
    WorkModel,
    WorkVersionModel,
    collection_work_memberships,
)
from shared.schemas.work import VersionState


def utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


DoiOwner = WorkModel | WorkVersionModel | CollectionModel

_PRIMARY_KEYS = {
    WorkModel: WorkModel.work_id,
    WorkVersionModel: WorkVersionModel.version_id,
    CollectionModel: CollectionModel.collection_id,
}


def _version_loader():
    """Eager-load options for a version's files and creators."""
    return (
        selectinload(WorkVersionModel.file_memberships).selectinload(
            FileVersionMembershipModel.file_resource
        ),
        selectinload(WorkVersionModel.creators),
    )


class WorkRepository:
    """Repository for work registry database operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def get_work(self, work_id: int) -> WorkModel | None:
        """Get a work with its versions, files and creators loaded.

        Args:
            work_id: Work primary key

        Returns:
            Work model or None if not found
        """
        query = (
            select(WorkModel)
            .where(WorkModel.work_id == work_id)
            .options(selectinload(WorkModel.versions).options(*_version_loader()))
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_work_version(self, version_id: int) -> WorkVersionModel | None:
        """Get a version with its work, files and creators loaded."""
        query = (
            select(WorkVersionModel)
            .where(WorkVersionModel.version_id == version_id)
            .options(selectinload(WorkVersionModel.work), *_version_loader())
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_collection(self, collection_id: int) -> CollectionModel | None:
        """Get a collection with its creators and member works (not their versions)."""
        query = (
            select(CollectionModel)
            .where(CollectionModel.collection_id == collection_id)
            .options(
                selectinload(CollectionModel.creators),
                selectinload(CollectionModel.works),
            )
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_collection_for_merge(self, collection_id: int) -> CollectionModel | None:
        """Lock, then load, a collection and every member work for a merge.

        The collection row and its member work rows (in ascending id order)
        are selected FOR UPDATE before anything else is read, so two merges
        touching the same works serialize and the loaded graph cannot go
        stale underneath the merge. Everything the merge reads or deletes is
        then loaded eagerly: works in ascending id order, each with its
        versions, file memberships (with files) and creators.

        Args:
            collection_id: Collection primary key

        Returns:
            Fully loaded collection, or None if it does not exist
        """
        locked = await self.session.execute(
            select(CollectionModel.collection_id)
            .where(CollectionModel.collection_id == collection_id)
            .with_for_update()
        )
        if locked.scalar_one_or_none() is None:
            return None

        await self.session.execute(
            select(WorkModel.work_id)
            .join(
                collection_work_memberships,
                collection_work_memberships.c.work_id == WorkModel.work_id,
            )
            .where(collection_work_memberships.c.collection_id == collection_id)
            .order_by(WorkModel.work_id)
            .with_for_update(of=WorkModel)
        )

        query = (
            select(CollectionModel)
            .where(CollectionModel.collection_id == collection_id)
            .execution_options(populate_existing=True)
            .options(
                selectinload(CollectionModel.creators),
                selectinload(CollectionModel.works)
                .selectinload(WorkModel.versions)
                .options(*_version_loader()),
            )
        )
        result = await self.session.execute(query)
        return result.scalar_one()

    async def count_works(self) -> int:
        """Count all works."""
        result = await self.session.execute(select(func.count()).select_from(WorkModel))
        return result.scalar() or 0

    async def count_collections(self) -> int:
        """Count all collections."""
        result = await self.session.execute(select(func.count()).select_from(CollectionModel))
        return result.scalar() or 0

    async def persist_doi(self, resource: DoiOwner, doi: str) -> None:
        """Write the DOI column directly, without validating the record.

        Issues a single UPDATE for the identifier column and marks the
        in-memory attribute as already committed, so a later flush does not
        re-validate or rewrite the rest of the row.

        Args:
            resource: Version, work or collection owning the identifier
            doi: Identifier returned by the registrar
        """
        model = type(resource)
        primary_key = _PRIMARY_KEYS[model]
        await self.session.execute(
            update(model)
            .where(primary_key == getattr(resource, primary_key.key))
            .values(doi=doi, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        set_committed_value(resource, "doi", doi)

    async def publish_version(self, version: WorkVersionModel) -> WorkVersionModel:
        """Move a draft version to published.

        Args:
            version: Draft version with files and creators loaded

        Returns:
            The published version

        Raises:
            InvalidTransitionError: If the version is not a draft, or does
                not satisfy the published-record validations
        """
        VersionStateMachine.validate_transition(version.state, VersionState.PUBLISHED)

        errors = validate_work_version(version, publishing=True)
        if errors:
            VersionStateMachine.reject(version.state, VersionState.PUBLISHED, errors)

        version.state = VersionState.PUBLISHED
        version.published_at = utc_now()
        await self.session.flush()
        return version
