from archiver.schemas.common import CamelModel, Key

DOCUMENT_STATUSES = ("ACTIVE", "ARCHIVED")


class DocumentCreate(CamelModel):
    title: str | None = None
    document_number: str | None = None
    description: str | None = None
    document_date: str | None = None
    category_id: Key | None = None
    file_path: str | None = None
    file_type: str | None = None
    file_size: int | str | None = None


class DocumentUpdate(CamelModel):
    title: str | None = None
    document_number: str | None = None
    description: str | None = None
    document_date: str | None = None
    category_id: Key | None = None
    status: str | None = None


class CategorySummary(CamelModel):
    id: Key
    name: str
    color: str | None = None


class DocumentResponse(CamelModel):
    id: Key
    title: str
    document_number: str | None = None
    description: str | None = None
    document_date: str | None = None
    category_id: Key
    file_path: str
    file_type: str
    file_size: int
    status: str
    uploaded_at: str
    created_at: str
    category: CategorySummary | None = None


class DocumentFilters(CamelModel):
    """Unset fields impose no constraint."""

    search: str | None = None
    category_id: Key | None = None
    status: str | None = None
    # ISO timestamps, already normalized to inclusive bounds
    start: str | None = None
    end: str | None = None
