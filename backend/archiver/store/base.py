"""Persistence port shared by every adapter.

Adapters implement CRUD primitives only. Uniqueness and referential
integrity are checked by ``archiver.services`` before any write.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable

from archiver.errors import NotFoundError
from archiver.schemas.activity import ActivityResponse
from archiver.schemas.category import CategoryResponse
from archiver.schemas.common import Key
from archiver.schemas.document import DocumentFilters, DocumentResponse

logger = logging.getLogger(__name__)

COLLECTIONS = ("categories", "documents", "activity_log")
ACTIVITY_SNAPSHOT_LIMIT = 50

Listener = Callable[[list], None]
Unsubscribe = Callable[[], None]


class SnapshotFeed:
    """Fan-out of full collection snapshots to subscribers.

    ``load(collection)`` returns the current snapshot of a collection.
    ``watch(collection, notify)``, when given, starts an external change
    source for the collection and returns a function that stops it; it is
    started with the first subscriber and stopped with the last one.
    """

    def __init__(
        self,
        load: Callable[[str], list],
        watch: Callable[[str, Callable[[], None]], Unsubscribe] | None = None,
    ):
        self._load = load
        self._watch = watch
        self._listeners: dict[str, list[Listener]] = {}
        self._stops: dict[str, Unsubscribe] = {}
        self._lock = threading.Lock()

    def subscribe(self, collection: str, callback: Listener) -> Unsubscribe:
        if collection not in COLLECTIONS:
            raise NotFoundError(f"Unknown collection: {collection}")

        with self._lock:
            listeners = self._listeners.setdefault(collection, [])
            listeners.append(callback)
            first = len(listeners) == 1

        def unsubscribe() -> None:
            with self._lock:
                remaining = self._listeners.get(collection, [])
                if callback in remaining:
                    remaining.remove(callback)
                stop = self._stops.pop(collection, None) if not remaining else None
            if stop is not None:
                stop()

        try:
            callback(self._load(collection))
            if first and self._watch is not None:
                self._start_watch(collection)
        except Exception:
            unsubscribe()
            raise
        return unsubscribe

    def _start_watch(self, collection: str) -> None:
        stop = self._watch(collection, lambda: self.publish(collection))
        with self._lock:
            keep = bool(self._listeners.get(collection)) and collection not in self._stops
            if keep:
                self._stops[collection] = stop
        if not keep:
            stop()

    def publish(self, collection: str) -> None:
        with self._lock:
            listeners = list(self._listeners.get(collection, ()))
        if not listeners:
            return
        snapshot = self._load(collection)
        for listener in listeners:
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Snapshot listener for %s failed", collection)


class ArchiveStore(ABC):
    """Storage contract for categories, documents and the activity log."""

    name: str = "store"

    def __init__(self, feed: SnapshotFeed | None = None):
        self.feed = feed

    @abstractmethod
    def parse_key(self, value: Any, what: str = "ID") -> Key:
        """Convert an incoming id to this store's key type or raise ValidationError."""

    # --- categories ---

    @abstractmethod
    def add_category(self, name: str, color: str | None = None) -> CategoryResponse: ...

    @abstractmethod
    def get_category(self, key: Key) -> CategoryResponse | None: ...

    @abstractmethod
    def find_category_by_name(self, name: str) -> CategoryResponse | None: ...

    @abstractmethod
    def list_categories(self) -> list[CategoryResponse]:
        """All categories by name ascending, with document counts."""

    @abstractmethod
    def update_category(self, key: Key, name: str, color: str | None = None) -> CategoryResponse:
        """Raises NotFoundError when the category is gone."""

    @abstractmethod
    def delete_category(self, key: Key) -> None:
        """Raises NotFoundError when the category is gone."""

    @abstractmethod
    def count_categories(self) -> int: ...

    # --- documents ---

    @abstractmethod
    def count_documents(self, category_id: Key | None = None, status: str | None = None) -> int: ...

    @abstractmethod
    def add_document(self, values: dict[str, Any]) -> DocumentResponse: ...

    @abstractmethod
    def get_document(self, key: Key) -> DocumentResponse | None: ...

    @abstractmethod
    def list_documents(self, filters: DocumentFilters) -> list[DocumentResponse]:
        """Matching documents by upload time, newest first."""

    def recent_documents(self, limit: int) -> list[DocumentResponse]:
        return self.list_documents(DocumentFilters())[:limit]

    @abstractmethod
    def update_document(self, key: Key, values: dict[str, Any]) -> DocumentResponse:
        """Raises NotFoundError when the document is gone."""

    @abstractmethod
    def delete_document(self, key: Key) -> None:
        """Raises NotFoundError when the document is gone."""

    @abstractmethod
    def storage_used(self) -> int: ...

    # --- activity log ---

    @abstractmethod
    def append_activity(self, action: str, document_id: Key | None = None) -> ActivityResponse: ...

    @abstractmethod
    def list_activity(self, limit: int) -> list[ActivityResponse]:
        """Most recent entries first."""

    @abstractmethod
    def detach_activity(self, document_id: Key) -> int:
        """Null the document reference on every entry pointing at it."""

    @abstractmethod
    def reset(self) -> None:
        """Remove all activity entries, documents and categories."""

    # --- subscriptions ---

    def snapshot(self, collection: str) -> list:
        if collection == "categories":
            return self.list_categories()
        if collection == "documents":
            return self.list_documents(DocumentFilters())
        if collection == "activity_log":
            return self.list_activity(ACTIVITY_SNAPSHOT_LIMIT)
        raise NotFoundError(f"Unknown collection: {collection}")

    def subscribe(self, collection: str, callback: Listener) -> Unsubscribe:
        if self.feed is None:
            raise RuntimeError(f"{self.name} store has no snapshot feed")
        return self.feed.subscribe(collection, callback)
