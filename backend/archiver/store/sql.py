"""Relational adapter: SQLAlchemy session per request.

Unique-constraint violations surface as ConflictError and updates or
deletes of missing rows as NotFoundError.
"""

import logging
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from archiver.errors import ArchiveError, ConflictError, ConstraintError, NotFoundError, UnknownError, ValidationError
from archiver.models import ActivityLog, Category, Document
from archiver.schemas.activity import ActivityResponse, DocumentRef
from archiver.schemas.category import CategoryResponse
from archiver.schemas.document import CategorySummary, DocumentFilters, DocumentResponse
from archiver.store.base import ArchiveStore, SnapshotFeed
from archiver.utils.timestamps import utc_now

logger = logging.getLogger(__name__)

KEY_MIN = -(2**63)
KEY_MAX = 2**63 - 1


def _category_to_response(category: Category, document_count: int) -> CategoryResponse:
    return CategoryResponse(
        id=category.id,
        name=category.name,
        color=category.color,
        created_at=category.created_at,
        updated_at=category.updated_at,
        document_count=document_count,
    )


def _doc_to_response(doc: Document) -> DocumentResponse:
    category = None
    if doc.category is not None:
        category = CategorySummary(id=doc.category.id, name=doc.category.name, color=doc.category.color)
    return DocumentResponse(
        id=doc.id,
        title=doc.title,
        document_number=doc.document_number,
        description=doc.description,
        document_date=doc.document_date,
        category_id=doc.category_id,
        file_path=doc.file_path,
        file_type=doc.file_type,
        file_size=doc.file_size,
        status=doc.status,
        uploaded_at=doc.uploaded_at,
        created_at=doc.created_at,
        category=category,
    )


def _activity_to_response(entry: ActivityLog) -> ActivityResponse:
    document = None
    if entry.document is not None:
        document = DocumentRef(id=entry.document.id, title=entry.document.title)
    return ActivityResponse(
        id=entry.id,
        action=entry.action,
        document_id=entry.document_id,
        timestamp=entry.timestamp,
        document=document,
    )


class SqlArchiveStore(ArchiveStore):
    name = "sql"

    def __init__(self, db: Session, feed: SnapshotFeed | None = None):
        super().__init__(feed)
        self.db = db

    def parse_key(self, value: Any, what: str = "ID") -> int:
        if isinstance(value, bool):
            raise ValidationError(f"Invalid {what}")
        try:
            key = value if isinstance(value, int) else int(str(value).strip())
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid {what}") from None
        if not KEY_MIN <= key <= KEY_MAX:
            raise ValidationError(f"Invalid {what}")
        return key

    def _commit(self, *collections: str, conflict: ArchiveError | None = None) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise (conflict or ConflictError("Record conflicts with existing data")) from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Database commit failed: %s", exc)
            raise UnknownError("Database error") from exc
        if self.feed is not None:
            for collection in collections:
                self.feed.publish(collection)

    # --- categories ---

    def _document_count(self, category_id: int) -> int:
        return self.db.query(func.count(Document.id)).filter(Document.category_id == category_id).scalar()

    def add_category(self, name: str, color: str | None = None) -> CategoryResponse:
        now = utc_now()
        category = Category(name=name, color=color, created_at=now, updated_at=now)
        self.db.add(category)
        self._commit("categories", conflict=ConflictError("Category already exists"))
        return _category_to_response(category, 0)

    def get_category(self, key: int) -> CategoryResponse | None:
        category = self.db.query(Category).filter(Category.id == key).first()
        if not category:
            return None
        return _category_to_response(category, self._document_count(category.id))

    def find_category_by_name(self, name: str) -> CategoryResponse | None:
        category = self.db.query(Category).filter(Category.name == name).first()
        if not category:
            return None
        return _category_to_response(category, self._document_count(category.id))

    def list_categories(self) -> list[CategoryResponse]:
        rows = (
            self.db.query(Category, func.count(Document.id))
            .outerjoin(Document, Document.category_id == Category.id)
            .group_by(Category.id)
            .order_by(Category.name.asc())
            .all()
        )
        return [_category_to_response(category, count) for category, count in rows]

    def update_category(self, key: int, name: str, color: str | None = None) -> CategoryResponse:
        category = self.db.query(Category).filter(Category.id == key).first()
        if not category:
            raise NotFoundError("Category not found")
        category.name = name
        if color is not None:
            category.color = color
        category.updated_at = utc_now()
        self._commit("categories", "documents", conflict=ConflictError("Category name already exists"))
        return _category_to_response(category, self._document_count(category.id))

    def delete_category(self, key: int) -> None:
        category = self.db.query(Category).filter(Category.id == key).first()
        if not category:
            raise NotFoundError("Category not found")
        self.db.delete(category)
        self._commit("categories", conflict=ConstraintError("Cannot delete category with associated documents"))

    def count_categories(self) -> int:
        return self.db.query(func.count(Category.id)).scalar()

    # --- documents ---

    def count_documents(self, category_id: int | None = None, status: str | None = None) -> int:
        query = self.db.query(func.count(Document.id))
        if category_id is not None:
            query = query.filter(Document.category_id == category_id)
        if status:
            query = query.filter(Document.status == status)
        return query.scalar()

    def add_document(self, values: dict[str, Any]) -> DocumentResponse:
        now = utc_now()
        category = self.db.get(Category, values.get("category_id"))
        if category is not None:
            category.updated_at = now
        doc = Document(**{"uploaded_at": now, "created_at": now, **values})
        self.db.add(doc)
        self._commit("documents", "categories")
        return _doc_to_response(doc)

    def get_document(self, key: int) -> DocumentResponse | None:
        doc = (
            self.db.query(Document)
            .options(joinedload(Document.category))
            .filter(Document.id == key)
            .first()
        )
        return _doc_to_response(doc) if doc else None

    def list_documents(self, filters: DocumentFilters) -> list[DocumentResponse]:
        query = self.db.query(Document).options(joinedload(Document.category))

        if filters.search:
            query = query.filter(
                Document.title.icontains(filters.search, autoescape=True)
                | Document.description.icontains(filters.search, autoescape=True)
            )
        if filters.category_id is not None:
            query = query.filter(Document.category_id == filters.category_id)
        if filters.status:
            query = query.filter(Document.status == filters.status)
        if filters.start:
            query = query.filter(Document.uploaded_at >= filters.start)
        if filters.end:
            query = query.filter(Document.uploaded_at <= filters.end)

        docs = query.order_by(Document.uploaded_at.desc(), Document.id.desc()).all()
        return [_doc_to_response(d) for d in docs]

    def recent_documents(self, limit: int) -> list[DocumentResponse]:
        docs = (
            self.db.query(Document)
            .options(joinedload(Document.category))
            .order_by(Document.uploaded_at.desc(), Document.id.desc())
            .limit(limit)
            .all()
        )
        return [_doc_to_response(d) for d in docs]

    def update_document(self, key: int, values: dict[str, Any]) -> DocumentResponse:
        doc = self.db.query(Document).filter(Document.id == key).first()
        if not doc:
            raise NotFoundError("Document not found")
        for field, value in values.items():
            setattr(doc, field, value)
        self._commit("documents", "categories")
        return _doc_to_response(doc)

    def delete_document(self, key: int) -> None:
        doc = self.db.query(Document).filter(Document.id == key).first()
        if not doc:
            raise NotFoundError("Document not found")
        self.db.delete(doc)
        self._commit("documents", "categories")

    def storage_used(self) -> int:
        return self.db.query(func.coalesce(func.sum(Document.file_size), 0)).scalar()

    # --- activity log ---

    def append_activity(self, action: str, document_id: int | None = None) -> ActivityResponse:
        entry = ActivityLog(action=action, document_id=document_id, timestamp=utc_now())
        self.db.add(entry)
        self._commit("activity_log")
        return _activity_to_response(entry)

    def list_activity(self, limit: int) -> list[ActivityResponse]:
        entries = (
            self.db.query(ActivityLog)
            .options(joinedload(ActivityLog.document))
            .order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc())
            .limit(limit)
            .all()
        )
        return [_activity_to_response(e) for e in entries]

    def detach_activity(self, document_id: int) -> int:
        count = (
            self.db.query(ActivityLog)
            .filter(ActivityLog.document_id == document_id)
            .update({ActivityLog.document_id: None}, synchronize_session=False)
        )
        self._commit("activity_log")
        return count

    def reset(self) -> None:
        self.db.query(ActivityLog).delete(synchronize_session=False)
        self.db.query(Document).delete(synchronize_session=False)
        self.db.query(Category).delete(synchronize_session=False)
        self._commit("activity_log", "documents", "categories")
