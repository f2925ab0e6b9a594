"""Search index update hook."""

from typing import Literal, Protocol

from services.work_registry.app.config import Settings
from services.work_registry.app.db.models import WorkModel
from shared.schemas.events import WorkIndexRequestedEvent
from shared.utils.logging import get_correlation_id, get_logger
from shared.utils.metrics import create_counter
from shared.utils.sqs import SQSClient

logger = get_logger(__name__)

IndexReason = Literal["merge", "doi", "publish"]

INDEX_REQUESTS = create_counter(
    "work_registry_index_requests_total",
    "Total work index update requests",
    ["reason"],
)


class IndexUpdater(Protocol):
    """Anything that can bring the search index up to date for a work."""

    async def update_index(self, work: WorkModel, reason: IndexReason = "publish") -> None:
        ...


class QueueIndexUpdater:
    """Requests reindexing by publishing a WorkIndexRequested event.

    Errors from the queue are not caught: a merge that cannot request its
    index update must roll back.
    """

    def __init__(self, sqs_client: SQSClient):
        """Initialize updater with a client for the index queue.

        Args:
            sqs_client: Client configured with the index queue URL
        """
        self.sqs_client = sqs_client

    async def update_index(self, work: WorkModel, reason: IndexReason = "publish") -> None:
        event = WorkIndexRequestedEvent(
            correlation_id=get_correlation_id(),
            work_id=work.work_id,
            work_uuid=work.uuid,
            reason=reason,
        )
        message_id = await self.sqs_client.send_message(event)
        INDEX_REQUESTS.labels(reason=reason).inc()
        logger.info(
            "index_update_requested",
            work_id=work.work_id,
            reason=reason,
            message_id=message_id,
        )


class NullIndexUpdater:
    """Index updater used when index updates are disabled."""

    async def update_index(self, work: WorkModel, reason: IndexReason = "publish") -> None:
        logger.debug("index_update_skipped", work_id=work.work_id, reason=reason)


def build_index_updater(settings: Settings) -> IndexUpdater:
    """Create the index updater the settings ask for."""
    if not settings.index_updates_enabled:
        return NullIndexUpdater()
    return QueueIndexUpdater(
        SQSClient(
            queue_url=settings.index_queue_url,
            region=settings.sqs_region,
            endpoint_url=settings.sqs_endpoint_url,
        )
    )
