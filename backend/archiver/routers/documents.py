from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response

from archiver.config import settings
from archiver.dependencies import get_files, get_store, require_admin
from archiver.filestore import FileStore
from archiver.schemas.common import MessageResponse
from archiver.schemas.document import DocumentCreate, DocumentResponse, DocumentUpdate
from archiver.services import document_service
from archiver.store.base import ArchiveStore
from archiver.utils.filesystem import sanitize_filename

router = APIRouter(
    prefix="/documents",
    tags=["documents"],
    dependencies=[Depends(require_admin)],
)


async def _read_upload(file: UploadFile) -> bytes:
    max_bytes = settings.max_upload_bytes
    size = 0
    chunks: list[bytes] = []
    while True:
        chunk = await file.read(1024 * 1024)
        if not chunk:
            break
        size += len(chunk)
        if size > max_bytes:
            raise HTTPException(status_code=413, detail=f"File too large (max {max_bytes} bytes)")
        chunks.append(chunk)
    return b"".join(chunks)


@router.get("", response_model=list[DocumentResponse])
def list_documents(
    search: str | None = None,
    category_id: str | None = Query(None, alias="categoryId"),
    status: str | None = None,
    start_date: str | None = Query(None, alias="startDate"),
    end_date: str | None = Query(None, alias="endDate"),
    store: ArchiveStore = Depends(get_store),
):
    return document_service.list_documents(store, search, category_id, status, start_date, end_date)


@router.post("", response_model=DocumentResponse, status_code=201)
def create_document(req: DocumentCreate, store: ArchiveStore = Depends(get_store)):
    return document_service.create_document(store, req)


@router.post("/upload", response_model=DocumentResponse, status_code=201)
async def upload_document(
    file: UploadFile = File(...),
    title: str | None = Form(None),
    category_id: str | None = Form(None, alias="categoryId"),
    document_number: str | None = Form(None, alias="documentNumber"),
    description: str | None = Form(None),
    document_date: str | None = Form(None, alias="documentDate"),
    store: ArchiveStore = Depends(get_store),
    files: FileStore = Depends(get_files),
):
    content = await _read_upload(file)
    return await run_in_threadpool(
        document_service.upload_document,
        store,
        files,
        file.filename,
        content,
        file.content_type,
        title=title,
        category_id=category_id,
        document_number=document_number,
        description=description,
        document_date=document_date,
    )


@router.get("/{document_id}", response_model=DocumentResponse)
def get_document(document_id: str, store: ArchiveStore = Depends(get_store)):
    return document_service.get_document(store, document_id)


@router.put("/{document_id}", response_model=DocumentResponse)
def update_document(document_id: str, req: DocumentUpdate, store: ArchiveStore = Depends(get_store)):
    return document_service.update_document(store, document_id, req)


@router.put("/{document_id}/file", response_model=DocumentResponse)
async def replace_document_file(
    document_id: str,
    file: UploadFile = File(...),
    store: ArchiveStore = Depends(get_store),
    files: FileStore = Depends(get_files),
):
    content = await _read_upload(file)
    return await run_in_threadpool(
        document_service.replace_document_file, store, files, document_id, file.filename, content, file.content_type
    )


@router.get("/{document_id}/download")
def download_document(
    document_id: str,
    store: ArchiveStore = Depends(get_store),
    files: FileStore = Depends(get_files),
):
    doc, content, media_type = document_service.open_document_file(store, files, document_id)
    filename = f"{sanitize_filename(doc.title)}.{doc.file_type}"
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.delete("/{document_id}", response_model=MessageResponse)
def delete_document(
    document_id: str,
    store: ArchiveStore = Depends(get_store),
    files: FileStore = Depends(get_files),
):
    document_service.delete_document(store, files, document_id)
    return MessageResponse(message="Document deleted successfully")
