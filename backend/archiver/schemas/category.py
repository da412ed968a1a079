from archiver.schemas.common import CamelModel, Key


class CategoryCreate(CamelModel):
    name: str | None = None
    color: str | None = None


class CategoryUpdate(CamelModel):
    name: str | None = None
    color: str | None = None


class CategoryResponse(CamelModel):
    id: Key
    name: str
    color: str | None = None
    created_at: str
    updated_at: str
    document_count: int = 0
