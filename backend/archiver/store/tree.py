"""Tree adapter over a realtime database.

Layout: ``categories``, ``documents`` and ``activity_log``, each a mapping
from push key to a camelCase record. Document records carry the category
name next to ``categoryId`` for display; reads join against the live
categories, so a document whose category vanished reads back with no
category. Nothing here enforces uniqueness or foreign keys.
"""

from collections import Counter
from typing import Any, Callable

from pydantic.alias_generators import to_camel

from archiver.errors import NotFoundError, ValidationError
from archiver.schemas.activity import ActivityResponse, DocumentRef
from archiver.schemas.category import CategoryResponse
from archiver.schemas.document import CategorySummary, DocumentFilters, DocumentResponse
from archiver.store.base import ArchiveStore, SnapshotFeed
from archiver.store.realtime import TreeClient, generate_push_id
from archiver.utils.timestamps import utc_now

CATEGORIES = "categories"
DOCUMENTS = "documents"
ACTIVITY_LOG = "activity_log"

_FORBIDDEN_KEY_CHARS = set(".$#[]/")


def _newest_first(record: dict) -> tuple:
    return record.get("uploadedAt", ""), record.get("id", "")


class TreeArchiveStore(ArchiveStore):
    name = "realtime"

    def __init__(self, tree: TreeClient, feed: SnapshotFeed | None = None, new_key: Callable[[], str] = generate_push_id):
        super().__init__(feed)
        self.tree = tree
        self.new_key = new_key

    def parse_key(self, value: Any, what: str = "ID") -> str:
        key = "" if value is None else str(value).strip()
        if not key or _FORBIDDEN_KEY_CHARS & set(key):
            raise ValidationError(f"Invalid {what}")
        return key

    def _records(self, collection: str) -> dict[str, dict]:
        data = self.tree.get(collection)
        return data if isinstance(data, dict) else {}

    # --- categories ---

    def _category_response(self, record: dict, document_count: int) -> CategoryResponse:
        return CategoryResponse.model_validate({**record, "documentCount": document_count})

    def add_category(self, name: str, color: str | None = None) -> CategoryResponse:
        key = self.new_key()
        now = utc_now()
        record = {"id": key, "name": name, "createdAt": now, "updatedAt": now}
        if color is not None:
            record["color"] = color
        self.tree.set(f"{CATEGORIES}/{key}", record)
        return self._category_response(record, 0)

    def get_category(self, key: str) -> CategoryResponse | None:
        record = self.tree.get(f"{CATEGORIES}/{key}")
        if not record:
            return None
        return self._category_response(record, self.count_documents(category_id=key))

    def find_category_by_name(self, name: str) -> CategoryResponse | None:
        for record in self._records(CATEGORIES).values():
            if record.get("name") == name:
                return self._category_response(record, self.count_documents(category_id=record["id"]))
        return None

    def list_categories(self) -> list[CategoryResponse]:
        counts = Counter(d.get("categoryId") for d in self._records(DOCUMENTS).values())
        records = sorted(self._records(CATEGORIES).values(), key=lambda r: (r.get("name", ""), r["id"]))
        return [self._category_response(r, counts[r["id"]]) for r in records]

    def update_category(self, key: str, name: str, color: str | None = None) -> CategoryResponse:
        if not self.tree.get(f"{CATEGORIES}/{key}"):
            raise NotFoundError("Category not found")
        changes: dict[str, Any] = {
            f"{CATEGORIES}/{key}/name": name,
            f"{CATEGORIES}/{key}/updatedAt": utc_now(),
        }
        if color is not None:
            changes[f"{CATEGORIES}/{key}/color"] = color
        # Keep the denormalized display names in step
        for doc_key, doc in self._records(DOCUMENTS).items():
            if doc.get("categoryId") == key:
                changes[f"{DOCUMENTS}/{doc_key}/category"] = name
        self.tree.update("", changes)
        return self.get_category(key)

    def delete_category(self, key: str) -> None:
        if not self.tree.get(f"{CATEGORIES}/{key}"):
            raise NotFoundError("Category not found")
        self.tree.delete(f"{CATEGORIES}/{key}")

    def count_categories(self) -> int:
        return len(self._records(CATEGORIES))

    # --- documents ---

    def _doc_response(self, record: dict, categories: dict[str, dict]) -> DocumentResponse:
        fields = {k: v for k, v in record.items() if k != "category"}
        category = categories.get(record.get("categoryId"))
        summary = None
        if category:
            summary = CategorySummary(id=category["id"], name=category["name"], color=category.get("color"))
        return DocumentResponse.model_validate({**fields, "category": summary})

    def count_documents(self, category_id: str | None = None, status: str | None = None) -> int:
        return sum(
            1
            for d in self._records(DOCUMENTS).values()
            if (category_id is None or d.get("categoryId") == category_id)
            and (not status or d.get("status") == status)
        )

    def add_document(self, values: dict[str, Any]) -> DocumentResponse:
        key = self.new_key()
        now = utc_now()
        record = {to_camel(field): value for field, value in values.items() if value is not None}
        record.setdefault("uploadedAt", now)
        record.setdefault("createdAt", now)
        record["id"] = key
        writes = {f"{DOCUMENTS}/{key}": record}
        category_id = record.get("categoryId")
        category = self.tree.get(f"{CATEGORIES}/{category_id}")
        if category:
            record["category"] = category.get("name")
            writes[f"{CATEGORIES}/{category_id}/updatedAt"] = now
        self.tree.update("", writes)
        return self.get_document(key)

    def get_document(self, key: str) -> DocumentResponse | None:
        record = self.tree.get(f"{DOCUMENTS}/{key}")
        if not record:
            return None
        return self._doc_response(record, self._records(CATEGORIES))

    def list_documents(self, filters: DocumentFilters) -> list[DocumentResponse]:
        categories = self._records(CATEGORIES)
        search = filters.search.lower() if filters.search else None
        matches = []
        for record in self._records(DOCUMENTS).values():
            if search and not (
                search in record.get("title", "").lower() or search in (record.get("description") or "").lower()
            ):
                continue
            if filters.category_id is not None and record.get("categoryId") != filters.category_id:
                continue
            if filters.status and record.get("status") != filters.status:
                continue
            uploaded_at = record.get("uploadedAt", "")
            if filters.start and uploaded_at < filters.start:
                continue
            if filters.end and uploaded_at > filters.end:
                continue
            matches.append(record)
        matches.sort(key=_newest_first, reverse=True)
        return [self._doc_response(r, categories) for r in matches]

    def update_document(self, key: str, values: dict[str, Any]) -> DocumentResponse:
        if not self.tree.get(f"{DOCUMENTS}/{key}"):
            raise NotFoundError("Document not found")
        changes = {to_camel(field): value for field, value in values.items()}
        if "category_id" in values:
            category = self.tree.get(f"{CATEGORIES}/{values['category_id']}")
            changes["category"] = category.get("name") if category else None
        self.tree.update(f"{DOCUMENTS}/{key}", changes)
        return self.get_document(key)

    def delete_document(self, key: str) -> None:
        if not self.tree.get(f"{DOCUMENTS}/{key}"):
            raise NotFoundError("Document not found")
        self.tree.delete(f"{DOCUMENTS}/{key}")

    def storage_used(self) -> int:
        return sum(int(d.get("fileSize") or 0) for d in self._records(DOCUMENTS).values())

    # --- activity log ---

    def append_activity(self, action: str, document_id: str | None = None) -> ActivityResponse:
        key = self.new_key()
        record = {"id": key, "action": action, "timestamp": utc_now()}
        if document_id is not None:
            record["documentId"] = document_id
        self.tree.set(f"{ACTIVITY_LOG}/{key}", record)
        document = self.tree.get(f"{DOCUMENTS}/{document_id}") if document_id is not None else None
        return self._activity_response(record, {document_id: document} if document else {})

    def _activity_response(self, record: dict, documents: dict[str, dict]) -> ActivityResponse:
        doc = documents.get(record.get("documentId"))
        ref = DocumentRef(id=doc["id"], title=doc["title"]) if doc else None
        return ActivityResponse.model_validate({**record, "document": ref})

    def list_activity(self, limit: int) -> list[ActivityResponse]:
        records = sorted(
            self._records(ACTIVITY_LOG).values(),
            key=lambda r: (r.get("timestamp", ""), r["id"]),
            reverse=True,
        )[:limit]
        documents = self._records(DOCUMENTS)
        return [self._activity_response(r, documents) for r in records]

    def detach_activity(self, document_id: str) -> int:
        changes = {
            f"{key}/documentId": None
            for key, record in self._records(ACTIVITY_LOG).items()
            if record.get("documentId") == document_id
        }
        if changes:
            self.tree.update(ACTIVITY_LOG, changes)
        return len(changes)

    def reset(self) -> None:
        self.tree.update("", {ACTIVITY_LOG: None, DOCUMENTS: None, CATEGORIES: None})
