import logging
import mimetypes
from datetime import date
from pathlib import Path
from typing import Any

from archiver.errors import NotFoundError, StorageError, ValidationError
from archiver.filestore import FileStore
from archiver.schemas.document import DOCUMENT_STATUSES, DocumentCreate, DocumentFilters, DocumentResponse, DocumentUpdate
from archiver.store.base import ArchiveStore
from archiver.utils.filesystem import file_type_for
from archiver.utils.timestamps import parse_bound

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = (
    ("title", "title"),
    ("category_id", "categoryId"),
    ("file_path", "filePath"),
    ("file_type", "fileType"),
    ("file_size", "fileSize"),
)


def _absent(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _file_size(value: int | str) -> int:
    if isinstance(value, bool):
        raise ValidationError("fileSize must be a whole number of bytes")
    try:
        size = value if isinstance(value, int) else int(str(value).strip())
    except ValueError:
        raise ValidationError("fileSize must be a whole number of bytes") from None
    if size < 0:
        raise ValidationError("fileSize must be a whole number of bytes")
    return size


def _status(value: str) -> str:
    status = value.strip().upper()
    if status not in DOCUMENT_STATUSES:
        raise ValidationError(f"Invalid status. Must be one of: {', '.join(DOCUMENT_STATUSES)}")
    return status


def _document_date(value: str | None) -> str | None:
    if _absent(value):
        return None
    value = value.strip()
    try:
        date.fromisoformat(value)
    except ValueError:
        raise ValidationError("documentDate must be a date (YYYY-MM-DD)") from None
    return value


def _existing_category(store: ArchiveStore, category_id) -> Any:
    key = store.parse_key(category_id, "category ID")
    if store.get_category(key) is None:
        raise ValidationError("Category not found")
    return key


def _bound(value: str | None, end: bool = False) -> str | None:
    if _absent(value):
        return None
    try:
        return parse_bound(value, end=end)
    except ValueError:
        raise ValidationError(f"Invalid date: {value}") from None


def _metadata(
    store: ArchiveStore,
    title: str | None,
    category_id,
    document_number: str | None = None,
    description: str | None = None,
    document_date: str | None = None,
) -> dict[str, Any]:
    return {
        "title": title.strip(),
        "document_number": document_number,
        "description": description,
        "document_date": _document_date(document_date),
        "category_id": _existing_category(store, category_id),
    }


def get_document(store: ArchiveStore, document_id) -> DocumentResponse:
    key = store.parse_key(document_id, "document ID")
    doc = store.get_document(key)
    if doc is None:
        raise NotFoundError("Document not found")
    return doc


def list_documents(
    store: ArchiveStore,
    search: str | None = None,
    category_id=None,
    status: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
) -> list[DocumentResponse]:
    filters = DocumentFilters(
        search=search or None,
        category_id=None if _absent(category_id) else store.parse_key(category_id, "category ID"),
        status=None if _absent(status) else _status(status),
        start=_bound(start_date),
        end=_bound(end_date, end=True),
    )
    return store.list_documents(filters)


def create_document(store: ArchiveStore, data: DocumentCreate) -> DocumentResponse:
    missing = [alias for field, alias in REQUIRED_FIELDS if _absent(getattr(data, field))]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    values = _metadata(
        store, data.title, data.category_id, data.document_number, data.description, data.document_date
    )
    values.update(
        file_path=data.file_path,
        file_type=data.file_type,
        file_size=_file_size(data.file_size),
        status="ACTIVE",
    )
    doc = store.add_document(values)
    store.append_activity(f"Uploaded document: {doc.title}", document_id=doc.id)
    return doc


def upload_document(
    store: ArchiveStore,
    files: FileStore,
    filename: str | None,
    content: bytes,
    content_type: str | None = None,
    title: str | None = None,
    category_id=None,
    document_number: str | None = None,
    description: str | None = None,
    document_date: str | None = None,
) -> DocumentResponse:
    """Store an uploaded file, then record it as a new document.

    Metadata is validated before anything is stored. When the file store
    fails nothing is written.
    """
    if _absent(title):
        title = Path(filename or "").stem
    if _absent(title) or _absent(category_id):
        raise ValidationError("Missing required fields: title, categoryId")
    values = _metadata(store, title, category_id, document_number, description, document_date)
    if not content:
        raise ValidationError("Empty file")

    file_path = files.save(filename or "upload", content, content_type)
    values.update(
        file_path=file_path,
        file_type=file_type_for(filename, content_type),
        file_size=len(content),
        status="ACTIVE",
    )
    doc = store.add_document(values)
    store.append_activity(f"Uploaded document: {doc.title}", document_id=doc.id)
    return doc


def update_document(store: ArchiveStore, document_id, data: DocumentUpdate) -> DocumentResponse:
    key = store.parse_key(document_id, "document ID")
    existing = store.get_document(key)
    if existing is None:
        raise NotFoundError("Document not found")

    changes = data.model_dump(exclude_unset=True)
    values: dict[str, Any] = {}
    if "title" in changes:
        if _absent(changes["title"]):
            raise ValidationError("Title cannot be empty")
        values["title"] = changes["title"].strip()
    for field in ("document_number", "description"):
        if field in changes:
            values[field] = changes[field]
    if "document_date" in changes:
        values["document_date"] = _document_date(changes["document_date"])
    if changes.get("category_id") is not None:
        values["category_id"] = _existing_category(store, changes["category_id"])
    if changes.get("status") is not None:
        values["status"] = _status(changes["status"])

    doc = store.update_document(key, values) if values else existing
    store.append_activity(f"Updated document ID {key}: {doc.title}", document_id=doc.id)
    return doc


def _remove_file(files: FileStore, path: str, document_id) -> None:
    if not files.owns(path):
        return
    try:
        files.delete(path)
    except StorageError as exc:
        logger.warning("Could not remove stored file %s of document %s: %s", path, document_id, exc)


def delete_document(store: ArchiveStore, files: FileStore, document_id) -> None:
    key = store.parse_key(document_id, "document ID")
    doc = store.get_document(key)
    if doc is None:
        raise NotFoundError("Document not found")

    # Audit entries outlive the document; only their reference goes
    store.detach_activity(key)
    store.delete_document(key)
    store.append_activity(f"Deleted document ID {key}")
    _remove_file(files, doc.file_path, key)


def replace_document_file(
    store: ArchiveStore,
    files: FileStore,
    document_id,
    filename: str | None,
    content: bytes,
    content_type: str | None = None,
) -> DocumentResponse:
    """Swap the stored file of a document.

    The new file is stored first and the metadata pointed at it; only then
    is the old file removed. A failed upload changes nothing.
    """
    key = store.parse_key(document_id, "document ID")
    doc = store.get_document(key)
    if doc is None:
        raise NotFoundError("Document not found")
    if not content:
        raise ValidationError("Empty file")

    new_path = files.save(filename or "upload", content, content_type)
    updated = store.update_document(
        key,
        {
            "file_path": new_path,
            "file_type": file_type_for(filename, content_type),
            "file_size": len(content),
        },
    )
    if doc.file_path != new_path:
        _remove_file(files, doc.file_path, key)

    store.append_activity(f"Replaced file for document ID {key}: {updated.title}", document_id=updated.id)
    return updated


def open_document_file(store: ArchiveStore, files: FileStore, document_id) -> tuple[DocumentResponse, bytes, str]:
    doc = get_document(store, document_id)
    if not files.owns(doc.file_path):
        raise NotFoundError("Document file is not held in archive storage")
    content = files.open(doc.file_path)
    media_type = mimetypes.guess_type(f"file.{doc.file_type}")[0] or "application/octet-stream"
    return doc, content, media_type
