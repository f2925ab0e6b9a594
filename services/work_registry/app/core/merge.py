"""Collapse the works of a collection into a single new work."""

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from services.work_registry.app.core.comparator import VERSION_METADATA_FIELDS
from services.work_registry.app.core.errors import (
    CollectionNotFoundError,
    MergedWorkInvalidError,
)
from services.work_registry.app.core.merge_validator import MergeValidator
from services.work_registry.app.core.outcome import MergeOutcome
from services.work_registry.app.core.validation import validate_work, validate_work_version
from services.work_registry.app.db.models import (
    AuthorshipModel,
    CollectionModel,
    FileVersionMembershipModel,
    WorkModel,
    WorkVersionModel,
)
from services.work_registry.app.db.repository import WorkRepository
from services.work_registry.app.indexing import IndexUpdater
from shared.schemas.work import VersionState
from shared.utils.db import run_in_transaction
from shared.utils.logging import get_logger, operation_context
from shared.utils.metrics import create_counter, create_histogram, observe_duration

if TYPE_CHECKING:
    from services.work_registry.app.doi.dispatcher import DoiDispatcher

logger = get_logger(__name__)

MERGES = create_counter(
    "work_registry_merges_total",
    "Total collection merges by result",
    ["result"],
)
MERGE_DURATION = create_histogram(
    "work_registry_merge_duration_seconds",
    "Time spent merging a collection",
)

# Descriptive fields a collection can supply for the merged version
COLLECTION_VERSION_FIELDS = (
    "title",
    "subtitle",
    "description",
    "published_date",
    "keyword",
    "publisher",
    "subject",
    "language",
    "identifier",
    "based_near",
    "related_url",
    "source",
    "contributor",
)

ACCESS_LISTS = ("discover_users", "discover_groups", "edit_users", "edit_groups")


def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple)):
        return bool(value)
    return True


def _copy(value: Any) -> Any:
    return list(value) if isinstance(value, (list, tuple)) else value


def merged_creators(works: list[WorkModel]) -> list[AuthorshipModel]:
    """Ordered union of the works' creators, as fresh unowned rows.

    A creator appearing on several works (same display name and actor) is
    kept once, at its first position.
    """
    seen: set[tuple[str, int | None]] = set()
    creators: list[AuthorshipModel] = []
    for work in works:
        for creator in work.latest_version.creators:
            key = (creator.display_name, creator.actor_id)
            if key in seen:
                continue
            seen.add(key)
            creators.append(creator.duplicate(position=len(creators)))
    return creators


def build_merged_work(collection: CollectionModel) -> WorkModel:
    """Build (but do not persist) the single work replacing a collection.

    Metadata comes from the collection where it has a value, otherwise from
    the first work in ascending id order. Nothing is copied by reference:
    the work, its draft version, file memberships and creators are all new
    rows; only the stored files themselves are shared.

    Args:
        collection: Collection loaded for merge, with at least one work

    Returns:
        Unsaved work with exactly one draft version
    """
    works = list(collection.works)
    first_work = works[0]
    first_version = first_work.latest_version

    work = WorkModel(
        work_type=first_work.work_type,
        visibility=collection.visibility or first_work.visibility,
        depositor_id=collection.depositor_id or first_work.depositor_id,
        doi=None,
        **{name: list(getattr(collection, name) or []) for name in ACCESS_LISTS},
    )

    version_fields = {}
    for name in set(VERSION_METADATA_FIELDS) | set(COLLECTION_VERSION_FIELDS):
        collection_value = getattr(collection, name, None)
        if _present(collection_value):
            version_fields[name] = _copy(collection_value)
        else:
            version_fields[name] = _copy(getattr(first_version, name))

    version = WorkVersionModel(
        version_number=1,
        state=VersionState.DRAFT,
        doi=None,
        **version_fields,
    )
    version.file_memberships = [
        FileVersionMembershipModel(
            file_resource_id=membership.file_resource_id,
            file_resource=membership.file_resource,
            title=membership.title,
        )
        for source_work in works
        for membership in source_work.latest_version.file_memberships
    ]
    version.creators = merged_creators(works)
    work.versions = [version]
    return work


class MergeCollection:
    """Merges every work of a collection into one new work, atomically.

    Eligibility failures come back as an unsuccessful MergeOutcome and
    change nothing. A merged work that fails record validation is also
    reported in the outcome, after its transaction has been rolled back.
    Every other failure (database errors, index update errors) rolls the
    transaction back and is raised to the caller.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        index_updater: IndexUpdater,
        validator: MergeValidator | None = None,
        doi_dispatcher_factory: "Callable[[AsyncSession], DoiDispatcher] | None" = None,
    ):
        """Initialize the merge.

        Args:
            session_factory: Factory for the merge's own transaction
            index_updater: Hook called for the new work before commit
            validator: Eligibility checks (defaults to MergeValidator())
            doi_dispatcher_factory: When given, a DOI is dispatched for the
                new work after the merge commits
        """
        self.session_factory = session_factory
        self.index_updater = index_updater
        self.validator = validator or MergeValidator()
        self.doi_dispatcher_factory = doi_dispatcher_factory

    async def call(self, collection_id: int, force: bool = False) -> MergeOutcome:
        """Merge a collection.

        Args:
            collection_id: Collection primary key
            force: Merge despite metadata mismatches; the first work's
                metadata (lowest id) wins where the collection has none

        Returns:
            MergeOutcome with the new work, or with the blocking messages

        Raises:
            CollectionNotFoundError: If the collection does not exist
            Exception: Any failure inside the transaction, after rollback
        """
        with operation_context(collection_id=collection_id, force=force):
            logger.info("merge_started")

            with observe_duration(MERGE_DURATION):
                result = await run_in_transaction(
                    self.session_factory,
                    lambda session: self._merge(session, collection_id, force),
                )

            if isinstance(result.error, MergedWorkInvalidError):
                MERGES.labels(result="invalid").inc()
                logger.warning("merge_invalid", errors=result.error.errors)
                return MergeOutcome.failure(result.error.errors)

            if not result.ok:
                MERGES.labels(result="failed").inc()
                logger.error("merge_failed", error=repr(result.error))
            outcome = result.unwrap()

            if not outcome.successful:
                MERGES.labels(result="rejected").inc()
                logger.info("merge_rejected", errors=outcome.errors)
                return outcome

            MERGES.labels(result="succeeded").inc()
            logger.info("merge_completed", work_id=outcome.work.work_id)

            if self.doi_dispatcher_factory is not None:
                await self._dispatch_doi(outcome.work.work_id)
            return outcome

    async def _merge(
        self,
        session: AsyncSession,
        collection_id: int,
        force: bool,
    ) -> MergeOutcome:
        repository = WorkRepository(session)
        collection = await repository.get_collection_for_merge(collection_id)
        if collection is None:
            raise CollectionNotFoundError(collection_id)

        violations = self.validator.validate(collection, force=force)
        if violations:
            return MergeOutcome.failure(violations)

        work = build_merged_work(collection)
        errors = validate_work(work) + validate_work_version(work.versions[0], publishing=False)
        if errors:
            raise MergedWorkInvalidError(collection_id, errors)

        session.add(work)
        await session.flush()

        merged_work_ids = [old.work_id for old in collection.works]
        for old in collection.works:
            await session.delete(old)
        await session.delete(collection)
        await session.flush()

        logger.info(
            "merge_rewritten",
            work_id=work.work_id,
            merged_work_ids=merged_work_ids,
            file_count=len(work.versions[0].file_memberships),
        )

        await self.index_updater.update_index(work, reason="merge")
        return MergeOutcome.success(work)

    async def _dispatch_doi(self, work_id: int) -> None:
        async with self.session_factory() as session:
            work = await WorkRepository(session).get_work(work_id)
            await self.doi_dispatcher_factory(session).dispatch(work)
            await session.commit()
