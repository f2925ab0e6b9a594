"""Tests for search index updaters."""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from services.work_registry.app.db.models import WorkModel
from services.work_registry.app.indexing import (
    NullIndexUpdater,
    QueueIndexUpdater,
    build_index_updater,
)
from shared.schemas.events import WorkIndexRequestedEvent
from shared.utils.logging import operation_context


@pytest.fixture
def mock_sqs_client():
    """Create mock SQS client."""
    mock = MagicMock()
    mock.send_message = AsyncMock(return_value="test-message-id-123")
    return mock


@pytest.fixture
def sample_work():
    return WorkModel(work_id=42, uuid=uuid4())


class TestQueueIndexUpdater:
    """Tests for queue-backed index updates."""

    @pytest.mark.asyncio
    async def test_sends_index_event(self, mock_sqs_client, sample_work):
        """Test that an index request event is sent for the work."""
        await QueueIndexUpdater(mock_sqs_client).update_index(sample_work, reason="merge")

        event = mock_sqs_client.send_message.call_args.args[0]
        assert isinstance(event, WorkIndexRequestedEvent)
        assert event.work_id == 42
        assert event.work_uuid == sample_work.uuid
        assert event.reason == "merge"

    @pytest.mark.asyncio
    async def test_event_carries_correlation_id(self, mock_sqs_client, sample_work):
        """Test that the current correlation ID is attached."""
        with operation_context(work_id=42) as correlation_id:
            await QueueIndexUpdater(mock_sqs_client).update_index(sample_work)

        event = mock_sqs_client.send_message.call_args.args[0]
        assert event.correlation_id == correlation_id
        assert event.reason == "publish"

    @pytest.mark.asyncio
    async def test_queue_errors_propagate(self, mock_sqs_client, sample_work):
        """Test that send failures are raised to the caller."""
        mock_sqs_client.send_message.side_effect = Exception("SQS unavailable")

        with pytest.raises(Exception, match="SQS unavailable"):
            await QueueIndexUpdater(mock_sqs_client).update_index(sample_work)

    @pytest.mark.asyncio
    async def test_requests_are_counted(self, mock_sqs_client, sample_work, metric_value):
        """Test that sent requests increment the counter."""
        before = metric_value("work_registry_index_requests_total", {"reason": "doi"})

        await QueueIndexUpdater(mock_sqs_client).update_index(sample_work, reason="doi")

        assert metric_value("work_registry_index_requests_total", {"reason": "doi"}) == before + 1


class TestBuildIndexUpdater:
    """Tests for choosing an updater from settings."""

    def test_disabled(self, test_settings):
        """Test that disabled updates use the null updater."""
        assert isinstance(build_index_updater(test_settings), NullIndexUpdater)

    def test_enabled(self, test_settings):
        """Test that enabled updates go to the configured queue."""
        settings = test_settings.model_copy(
            update={"index_updates_enabled": True, "index_queue_url": "http://test/queue"}
        )

        updater = build_index_updater(settings)

        assert isinstance(updater, QueueIndexUpdater)
        assert updater.sqs_client.queue_url == "http://test/queue"

    @pytest.mark.asyncio
    async def test_null_updater_does_nothing(self, sample_work):
        """Test that the null updater accepts any work."""
        assert await NullIndexUpdater().update_index(sample_work, reason="merge") is None
