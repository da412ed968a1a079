import logging

from archiver.errors import ValidationError
from archiver.schemas.activity import ActivityResponse
from archiver.schemas.dashboard import DashboardResponse
from archiver.store.base import ArchiveStore

logger = logging.getLogger(__name__)

RECENT_DOCUMENTS = 5


def list_activity(store: ArchiveStore, limit: int = 50) -> list[ActivityResponse]:
    if limit < 1:
        raise ValidationError("limit must be at least 1")
    return store.list_activity(limit)


def dashboard_summary(store: ArchiveStore) -> DashboardResponse:
    return DashboardResponse(
        total_documents=store.count_documents(),
        archived_documents=store.count_documents(status="ARCHIVED"),
        recent_documents=store.recent_documents(RECENT_DOCUMENTS),
        total_categories=store.count_categories(),
        storage_used_bytes=store.storage_used(),
    )


def reset_archive(store: ArchiveStore, username: str) -> None:
    """Remove every activity entry, document and category.

    Stored files stay where they are.
    """
    logger.warning("Full archive reset requested by %s (%s backend)", username, store.name)
    store.reset()
