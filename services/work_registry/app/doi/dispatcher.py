"""Decide and perform the DOI action for a version, work or collection."""

from dataclasses import dataclass
from typing import Any, ClassVar
from uuid import UUID

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncSession

from services.work_registry.app.config import Settings, get_settings
from services.work_registry.app.db.models import CollectionModel, WorkModel, WorkVersionModel
from services.work_registry.app.db.repository import WorkRepository
from services.work_registry.app.doi.metadata import CollectionMetadata, WorkVersionMetadata
from services.work_registry.app.doi.registrar import DoiRegistrar
from services.work_registry.app.indexing import IndexUpdater
from shared.utils.logging import get_logger, operation_context
from shared.utils.metrics import create_counter

logger = get_logger(__name__)

DOI_DISPATCHES = create_counter(
    "work_registry_doi_dispatches_total",
    "Total DOI dispatches by target kind and action",
    ["kind", "action"],
)


class InvalidResourceError(ValueError):
    """Raised when asked to dispatch a DOI for something that cannot hold one."""


@dataclass(frozen=True)
class VersionTarget:
    """A single version; its own row holds the identifier."""

    version: WorkVersionModel
    kind: ClassVar[str] = "version"

    @property
    def record(self) -> WorkVersionModel:
        return self.version

    @property
    def is_draft(self) -> bool:
        return self.version.is_draft

    @property
    def doi(self) -> str | None:
        return self.version.doi

    @property
    def public_identifier(self) -> UUID:
        return self.version.uuid


@dataclass(frozen=True)
class WorkTarget:
    """A work, described by (and gated on the state of) its latest version."""

    work: WorkModel
    latest_version: WorkVersionModel
    kind: ClassVar[str] = "work"

    @property
    def record(self) -> WorkModel:
        return self.work

    @property
    def is_draft(self) -> bool:
        return self.latest_version.is_draft

    @property
    def doi(self) -> str | None:
        return self.work.doi

    @property
    def public_identifier(self) -> UUID:
        return self.work.uuid


@dataclass(frozen=True)
class CollectionTarget:
    """A collection, which has no draft state."""

    collection: CollectionModel
    kind: ClassVar[str] = "collection"

    @property
    def record(self) -> CollectionModel:
        return self.collection

    @property
    def is_draft(self) -> bool:
        return False

    @property
    def doi(self) -> str | None:
        return self.collection.doi

    @property
    def public_identifier(self) -> UUID:
        return self.collection.uuid


DoiTarget = VersionTarget | WorkTarget | CollectionTarget


def _require_loaded(resource: Any, *relationships: str) -> None:
    """Refuse resources whose relationships would need lazy IO to read."""
    missing = sorted(set(relationships) & inspect(resource).unloaded)
    if missing:
        raise InvalidResourceError(
            f"{type(resource).__name__} must be loaded with {', '.join(missing)}"
        )


def to_target(resource: Any) -> DoiTarget:
    """Classify a resource for dispatch.

    Versions need their work and creators loaded, works their versions
    (and the latest version's creators), collections their creators; the
    repository's get_* methods load all of these.

    Raises:
        InvalidResourceError: For anything other than a fully loaded
            version, work with at least one version, or collection
    """
    match resource:
        case WorkVersionModel():
            _require_loaded(resource, "work", "creators")
            return VersionTarget(resource)
        case WorkModel():
            _require_loaded(resource, "versions")
            latest_version = resource.latest_version
            if latest_version is None:
                raise InvalidResourceError(f"Work-{resource.work_id} has no versions")
            _require_loaded(latest_version, "creators")
            return WorkTarget(resource, latest_version)
        case CollectionModel():
            _require_loaded(resource, "creators")
            return CollectionTarget(resource)
        case _:
            raise InvalidResourceError(
                f"Cannot dispatch a DOI for {type(resource).__name__}"
            )


def build_metadata(target: DoiTarget, settings: Settings) -> dict[str, Any]:
    """Build DataCite attributes for a target, keyed by its public identifier."""
    match target:
        case VersionTarget(version=version):
            mapper = WorkVersionMetadata(
                version,
                public_identifier=target.public_identifier,
                publisher=settings.doi_publisher,
                base_url=settings.resource_base_url,
                work_type=version.work.work_type,
            )
        case WorkTarget(work=work, latest_version=version):
            mapper = WorkVersionMetadata(
                version,
                public_identifier=target.public_identifier,
                publisher=settings.doi_publisher,
                base_url=settings.resource_base_url,
                work_type=work.work_type,
            )
        case CollectionTarget(collection=collection):
            mapper = CollectionMetadata(
                collection,
                public_identifier=target.public_identifier,
                publisher=settings.doi_publisher,
                base_url=settings.resource_base_url,
            )
    return mapper.attributes()


class DoiDispatcher:
    """Registers, publishes or leaves alone the DOI of one resource.

    | target     | state     | existing DOI | action                     |
    |------------|-----------|--------------|----------------------------|
    | version    | draft     | none         | register                   |
    | version    | draft     | present      | nothing                    |
    | version    | published | any          | publish metadata           |
    | work       | draft     | none         | register, update index     |
    | work       | draft     | present      | nothing                    |
    | work       | published | any          | publish metadata, update index |
    | collection | -         | any          | publish metadata           |

    The returned identifier is written with a direct UPDATE that bypasses
    record validation, and only when it differs from the stored one.
    Registrar and metadata errors are raised before anything is written.
    """

    def __init__(
        self,
        session: AsyncSession,
        registrar: DoiRegistrar,
        index_updater: IndexUpdater,
        settings: Settings | None = None,
        metadata_builder=build_metadata,
    ):
        self.session = session
        self.registrar = registrar
        self.index_updater = index_updater
        self.settings = settings or get_settings()
        self.metadata_builder = metadata_builder
        self.repository = WorkRepository(session)

    async def dispatch(self, resource: Any) -> str | None:
        """Perform the DOI action for a resource.

        Args:
            resource: WorkVersionModel, WorkModel or CollectionModel, loaded
                through WorkRepository so no relationship needs lazy IO

        Returns:
            The resource's identifier after dispatch (None only if nothing
            was done and none existed)

        Raises:
            InvalidResourceError: For an unsupported or partially loaded resource
            MetadataValidationError: If publish metadata cannot be built
            RegistrarError: If the registrar call fails
        """
        target = to_target(resource)

        with operation_context(
            doi_target=target.kind,
            public_identifier=str(target.public_identifier),
        ):
            match target:
                case VersionTarget() | WorkTarget() if target.is_draft and target.doi:
                    DOI_DISPATCHES.labels(kind=target.kind, action="noop").inc()
                    logger.info("doi_skipped", doi=target.doi)
                    return target.doi
                case VersionTarget() | WorkTarget() if target.is_draft:
                    doi, _ = await self.registrar.register()
                    action = "register"
                case _:
                    metadata = self.metadata_builder(target, self.settings)
                    doi, _ = await self.registrar.publish(doi=target.doi, metadata=metadata)
                    action = "publish"

            if doi != target.doi:
                await self.repository.persist_doi(target.record, doi)

            DOI_DISPATCHES.labels(kind=target.kind, action=action).inc()
            logger.info("doi_registered" if action == "register" else "doi_published", doi=doi)

            if isinstance(target, WorkTarget):
                await self.index_updater.update_index(target.work, reason="doi")
            return doi
