"""Pytest fixtures for Work Registry tests."""

import itertools
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from prometheus_client import REGISTRY
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from services.work_registry.app.config import Settings
from services.work_registry.app.db.models import (
    AuthorshipModel,
    Base,
    CollectionModel,
    FileResourceModel,
    FileVersionMembershipModel,
    WorkModel,
    WorkVersionModel,
)
from shared.schemas.work import VersionState, Visibility, WorkType

DEFAULT_CREATORS = ("Pat Doe", "Sam Lee")
DEFAULT_KEYWORDS = ("solar wind", "heliosphere")


@pytest.fixture
async def db_engine():
    """Create a single-connection in-memory SQLite engine with foreign keys enforced."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for testing."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def test_settings():
    """Create test settings."""
    return Settings(
        environment="test",
        database_url="sqlite+aiosqlite:///:memory:",
        index_updates_enabled=False,
        sqs_endpoint_url=None,
        doi_publisher="Test Repository",
        resource_base_url="https://repository.test/resources",
    )


@pytest.fixture
def metric_value():
    """Read a sample from the default Prometheus registry (0.0 if unset)."""

    def _value(name: str, labels: dict[str, str] | None = None) -> float:
        return REGISTRY.get_sample_value(name, labels or {}) or 0.0

    return _value


@pytest.fixture
def mock_index_updater():
    """Index updater that records calls."""
    mock = MagicMock()
    mock.update_index = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def mock_registrar():
    """DOI registrar returning fixed identifiers."""
    mock = MagicMock()
    mock.register = AsyncMock(return_value=("10.5555/draft-001", {"state": "draft"}))
    mock.publish = AsyncMock(return_value=("10.5555/findable-001", {"state": "findable"}))
    return mock


def _creator(name: str, position: int) -> AuthorshipModel:
    given_name, _, surname = name.rpartition(" ")
    return AuthorshipModel(
        display_name=name,
        given_name=given_name or None,
        surname=surname,
        position=position,
    )


@pytest.fixture
def build_work():
    """Factory for unsaved works with one or more versions.

    Each call gets distinct file names so that merged versions stay valid.
    """
    counter = itertools.count(1)

    def _build(
        title: str = "Sample Work",
        work_type: WorkType | None = WorkType.DATASET,
        visibility: Visibility = Visibility.OPEN,
        state: VersionState = VersionState.PUBLISHED,
        file_count: int = 1,
        version_count: int = 1,
        creators: tuple[str, ...] = DEFAULT_CREATORS,
        keyword: tuple[str, ...] = DEFAULT_KEYWORDS,
        doi: str | None = None,
        discover_users: list[str] | None = None,
        **version_fields,
    ) -> WorkModel:
        number = next(counter)
        fields = {
            "description": "Magnetometer readings from the inner heliosphere.",
            "rights": "https://creativecommons.org/licenses/by/4.0/",
            "published_date": "2021-05-03",
            "publisher": ["Test Observatory"],
            **version_fields,
        }

        versions = []
        for version_number in range(1, version_count + 1):
            version = WorkVersionModel(
                version_number=version_number,
                state=state,
                title=title,
                keyword=list(keyword),
                **fields,
            )
            version.file_memberships = [
                FileVersionMembershipModel(
                    title=f"work-{number}-file-{index}.csv",
                    file_resource=FileResourceModel(
                        original_filename=f"work-{number}-file-{index}.csv",
                        content_type="text/csv",
                        size=1024,
                        storage_key=f"files/{uuid4()}",
                    ),
                )
                for index in range(1, file_count + 1)
            ]
            version.creators = [_creator(name, i) for i, name in enumerate(creators)]
            versions.append(version)

        return WorkModel(
            work_type=work_type,
            visibility=visibility,
            doi=doi,
            discover_users=discover_users or [],
            discover_groups=[],
            edit_users=[],
            edit_groups=[],
            versions=versions,
        )

    return _build


@pytest.fixture
def build_collection():
    """Factory for unsaved collections over the given works."""

    def _build(
        works: list[WorkModel],
        title: str = "Sample Collection",
        creators: tuple[str, ...] = DEFAULT_CREATORS,
        keyword: tuple[str, ...] = DEFAULT_KEYWORDS,
        **fields,
    ) -> CollectionModel:
        collection = CollectionModel(
            title=title,
            description=fields.pop("description", "Readings from one campaign."),
            published_date=fields.pop("published_date", "2021"),
            keyword=list(keyword),
            **fields,
        )
        collection.works = list(works)
        collection.creators = [_creator(name, i) for i, name in enumerate(creators)]
        return collection

    return _build


@pytest.fixture
def persist(session_factory):
    """Save records in their own committed transaction and return them."""

    async def _persist(*records):
        async with session_factory() as session:
            session.add_all(records)
            await session.commit()
        return records[0] if len(records) == 1 else records

    return _persist
