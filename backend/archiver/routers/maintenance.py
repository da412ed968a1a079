from fastapi import APIRouter, Depends

from archiver.backends import Backend
from archiver.config import settings
from archiver.dependencies import get_backend, get_store, require_admin
from archiver.schemas.common import MessageResponse
from archiver.schemas.dashboard import SettingsResponse
from archiver.services import activity_service
from archiver.services.auth_service import AdminContext
from archiver.store.base import ArchiveStore

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("", response_model=SettingsResponse)
async def get_settings(_admin: AdminContext = Depends(require_admin), backend: Backend = Depends(get_backend)):
    return SettingsResponse(
        backend=backend.name,
        storage=backend.files.name,
        max_upload_bytes=settings.max_upload_bytes,
    )


@router.post("/reset", response_model=MessageResponse)
def reset_archive(admin: AdminContext = Depends(require_admin), store: ArchiveStore = Depends(get_store)):
    activity_service.reset_archive(store, admin.username)
    return MessageResponse(message="Archive reset")
