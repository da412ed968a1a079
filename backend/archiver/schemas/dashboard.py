from archiver.schemas.common import CamelModel
from archiver.schemas.document import DocumentResponse


class DashboardResponse(CamelModel):
    total_documents: int
    archived_documents: int
    recent_documents: list[DocumentResponse]
    total_categories: int = 0
    storage_used_bytes: int = 0


class SettingsResponse(CamelModel):
    backend: str
    storage: str
    max_upload_bytes: int
