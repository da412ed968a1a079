from archiver.schemas.common import CamelModel, Key


class DocumentRef(CamelModel):
    id: Key
    title: str


class ActivityResponse(CamelModel):
    id: Key
    action: str
    document_id: Key | None = None
    timestamp: str
    document: DocumentRef | None = None
