"""Tests for DOI dispatch."""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select

from services.work_registry.app.db.models import (
    ActorModel,
    CollectionModel,
    WorkModel,
    WorkVersionModel,
)
from services.work_registry.app.db.repository import WorkRepository
from services.work_registry.app.doi.dispatcher import (
    CollectionTarget,
    DoiDispatcher,
    InvalidResourceError,
    VersionTarget,
    WorkTarget,
    to_target,
)
from services.work_registry.app.doi.metadata import MetadataValidationError
from services.work_registry.app.doi.registrar import RegistrarError
from shared.schemas.work import VersionState


@pytest.fixture
def dispatcher(db_session, mock_registrar, mock_index_updater, test_settings):
    return DoiDispatcher(db_session, mock_registrar, mock_index_updater, test_settings)


async def _load_work(session, work: WorkModel) -> WorkModel:
    return await WorkRepository(session).get_work(work.work_id)


async def _load_version(session, work: WorkModel) -> WorkVersionModel:
    return await WorkRepository(session).get_work_version(work.versions[0].version_id)


async def _stored_doi(session, model, primary_key, value) -> str | None:
    return await session.scalar(select(model.doi).where(primary_key == value))


class TestToTarget:
    """Tests for classifying resources."""

    def test_version(self, build_work):
        """Test that a version becomes a version target."""
        work = build_work()
        assert isinstance(to_target(work.versions[0]), VersionTarget)

    def test_work_uses_latest_version(self, build_work):
        """Test that a work target carries its highest-numbered version."""
        work = build_work(version_count=2)

        target = to_target(work)

        assert isinstance(target, WorkTarget)
        assert target.latest_version.version_number == 2

    def test_collection(self, build_collection):
        """Test that a collection becomes a collection target."""
        assert isinstance(to_target(build_collection([])), CollectionTarget)

    def test_unsupported_resource(self):
        """Test that other resources are rejected."""
        with pytest.raises(InvalidResourceError, match="ActorModel"):
            to_target(ActorModel(surname="Doe"))

    def test_work_without_versions(self):
        """Test that a work with no versions cannot be targeted."""
        with pytest.raises(InvalidResourceError, match="no versions"):
            to_target(WorkModel(versions=[]))


class TestVersionDispatch:
    """DOI actions for versions."""

    @pytest.mark.asyncio
    async def test_draft_without_doi_registers(
        self, dispatcher, db_session, build_work, persist, mock_registrar
    ):
        """Test that a draft version gets a reserved identifier."""
        work = await persist(build_work(state=VersionState.DRAFT))
        version = await _load_version(db_session, work)

        doi = await dispatcher.dispatch(version)

        assert doi == "10.5555/draft-001"
        mock_registrar.register.assert_awaited_once()
        mock_registrar.publish.assert_not_awaited()
        assert version.doi == "10.5555/draft-001"
        stored = await _stored_doi(
            db_session, WorkVersionModel, WorkVersionModel.version_id, version.version_id
        )
        assert stored == "10.5555/draft-001"

    @pytest.mark.asyncio
    async def test_draft_with_doi_does_nothing(
        self, dispatcher, db_session, build_work, persist, mock_registrar
    ):
        """Test that a draft already holding an identifier is left alone."""
        work = build_work(state=VersionState.DRAFT)
        work.versions[0].doi = "10.5555/existing"
        await persist(work)
        version = await _load_version(db_session, work)

        doi = await dispatcher.dispatch(version)

        assert doi == "10.5555/existing"
        mock_registrar.register.assert_not_awaited()
        mock_registrar.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_published_version_publishes_metadata(
        self, dispatcher, db_session, build_work, persist, mock_registrar, mock_index_updater
    ):
        """Test that a published version's metadata is sent to the registrar."""
        work = await persist(build_work(title="Solar Wind Readings"))
        version = await _load_version(db_session, work)

        doi = await dispatcher.dispatch(version)

        assert doi == "10.5555/findable-001"
        kwargs = mock_registrar.publish.call_args.kwargs
        assert kwargs["doi"] is None
        assert kwargs["metadata"]["titles"] == [{"title": "Solar Wind Readings"}]
        assert kwargs["metadata"]["url"].endswith(str(version.uuid))
        mock_index_updater.update_index.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_published_version_with_doi_updates_existing(
        self, dispatcher, db_session, build_work, persist, mock_registrar
    ):
        """Test that publishing reuses the stored identifier and skips the write."""
        work = build_work()
        work.versions[0].doi = "10.5555/findable-001"
        await persist(work)
        version = await _load_version(db_session, work)
        dispatcher.repository.persist_doi = AsyncMock()

        await dispatcher.dispatch(version)

        assert mock_registrar.publish.call_args.kwargs["doi"] == "10.5555/findable-001"
        dispatcher.repository.persist_doi.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_version_still_saves_doi(
        self, dispatcher, db_session, build_work, persist
    ):
        """Test that an incomplete draft still records its identifier."""
        work = await persist(build_work(title="", state=VersionState.DRAFT))
        version = await _load_version(db_session, work)

        await dispatcher.dispatch(version)

        stored = await _stored_doi(
            db_session, WorkVersionModel, WorkVersionModel.version_id, version.version_id
        )
        assert stored == "10.5555/draft-001"

    @pytest.mark.asyncio
    async def test_dispatching_twice_registers_once(
        self, dispatcher, db_session, build_work, persist, mock_registrar
    ):
        """Test that a second dispatch for a draft is a no-op."""
        work = await persist(build_work(state=VersionState.DRAFT))
        version = await _load_version(db_session, work)

        await dispatcher.dispatch(version)
        await dispatcher.dispatch(version)

        mock_registrar.register.assert_awaited_once()


class TestWorkDispatch:
    """DOI actions for works, which also update the search index."""

    @pytest.mark.asyncio
    async def test_draft_work_registers_and_indexes(
        self, dispatcher, db_session, build_work, persist, mock_registrar, mock_index_updater
    ):
        """Test that a work whose latest version is a draft is registered."""
        work = await load_after_persist(db_session, persist, build_work(state=VersionState.DRAFT))

        await dispatcher.dispatch(work)

        mock_registrar.register.assert_awaited_once()
        mock_index_updater.update_index.assert_awaited_once_with(work, reason="doi")
        assert await _stored_doi(db_session, WorkModel, WorkModel.work_id, work.work_id) == (
            "10.5555/draft-001"
        )

    @pytest.mark.asyncio
    async def test_draft_work_with_doi_does_nothing(
        self, dispatcher, db_session, build_work, persist, mock_registrar, mock_index_updater
    ):
        """Test that nothing happens for a draft work with an identifier."""
        work = await load_after_persist(
            db_session, persist, build_work(state=VersionState.DRAFT, doi="10.5555/work")
        )

        assert await dispatcher.dispatch(work) == "10.5555/work"

        mock_registrar.register.assert_not_awaited()
        mock_index_updater.update_index.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_published_work_publishes_and_indexes(
        self, dispatcher, db_session, build_work, persist, mock_registrar, mock_index_updater
    ):
        """Test that a published work's metadata is published under the work's uuid."""
        work = await load_after_persist(db_session, persist, build_work())

        await dispatcher.dispatch(work)

        metadata = mock_registrar.publish.call_args.kwargs["metadata"]
        assert metadata["url"] == f"https://repository.test/resources/{work.uuid}"
        assert metadata["types"]["resourceTypeGeneral"] == "Dataset"
        mock_index_updater.update_index.assert_awaited_once_with(work, reason="doi")
        assert work.doi == "10.5555/findable-001"

    @pytest.mark.asyncio
    async def test_published_work_with_doi_still_indexes(
        self, dispatcher, db_session, build_work, persist, mock_registrar, mock_index_updater
    ):
        """Test that republishing an unchanged identifier still updates the index."""
        work = await load_after_persist(
            db_session, persist, build_work(doi="10.5555/findable-001")
        )
        dispatcher.repository.persist_doi = AsyncMock()

        await dispatcher.dispatch(work)

        dispatcher.repository.persist_doi.assert_not_awaited()
        mock_index_updater.update_index.assert_awaited_once()


class TestCollectionDispatch:
    """DOI actions for collections."""

    @pytest.mark.asyncio
    async def test_collection_publishes(
        self, dispatcher, db_session, build_collection, persist, mock_registrar
    ):
        """Test that a collection is always published."""
        collection = await persist(build_collection([]))
        loaded = await WorkRepository(db_session).get_collection(collection.collection_id)

        await dispatcher.dispatch(loaded)

        metadata = mock_registrar.publish.call_args.kwargs["metadata"]
        assert metadata["types"] == {"resourceTypeGeneral": "Collection"}
        stored = await _stored_doi(
            db_session, CollectionModel, CollectionModel.collection_id, collection.collection_id
        )
        assert stored == "10.5555/findable-001"


class TestDispatchFailures:
    """Failures leave the stored identifier untouched."""

    @pytest.mark.asyncio
    async def test_metadata_error_aborts_before_registrar(
        self, dispatcher, db_session, build_work, persist, mock_registrar
    ):
        """Test that missing publish metadata raises without calling the registrar."""
        work = await persist(build_work(creators=()))
        version = await _load_version(db_session, work)

        with pytest.raises(MetadataValidationError, match="creator"):
            await dispatcher.dispatch(version)

        mock_registrar.publish.assert_not_awaited()
        assert version.doi is None

    @pytest.mark.asyncio
    async def test_registrar_error_propagates(
        self, dispatcher, db_session, build_work, persist, mock_registrar
    ):
        """Test that registrar errors are raised and nothing is saved."""
        mock_registrar.register.side_effect = RegistrarError("registrar timed out")
        work = await persist(build_work(state=VersionState.DRAFT))
        version = await _load_version(db_session, work)

        with pytest.raises(RegistrarError, match="timed out"):
            await dispatcher.dispatch(version)

        stored = await _stored_doi(
            db_session, WorkVersionModel, WorkVersionModel.version_id, version.version_id
        )
        assert stored is None

    @pytest.mark.asyncio
    async def test_version_without_relationships_loaded(
        self, dispatcher, db_session, build_work, persist, mock_registrar
    ):
        """Test that a version fetched without its work and creators is refused up front."""
        work = await persist(build_work())
        version = await db_session.get(WorkVersionModel, work.versions[0].version_id)

        with pytest.raises(InvalidResourceError, match="must be loaded with creators, work"):
            await dispatcher.dispatch(version)

        mock_registrar.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_work_without_versions_loaded(self, dispatcher, db_session, build_work, persist):
        """Test that a work fetched without its versions is refused up front."""
        work = await persist(build_work())
        bare = await db_session.get(WorkModel, work.work_id)

        with pytest.raises(InvalidResourceError, match="must be loaded with versions"):
            await dispatcher.dispatch(bare)

    @pytest.mark.asyncio
    async def test_unsupported_resource(self, dispatcher):
        """Test that unsupported resources raise a ValueError subclass."""
        with pytest.raises(ValueError):
            await dispatcher.dispatch("not a resource")


async def load_after_persist(session, persist, work: WorkModel) -> WorkModel:
    await persist(work)
    return await _load_work(session, work)
