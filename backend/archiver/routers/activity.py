from fastapi import APIRouter, Depends, Query

from archiver.dependencies import get_store, require_admin
from archiver.schemas.activity import ActivityResponse
from archiver.services import activity_service
from archiver.store.base import ArchiveStore

router = APIRouter(prefix="/activity-log", tags=["activity"], dependencies=[Depends(require_admin)])


@router.get("", response_model=list[ActivityResponse])
def list_activity(
    limit: int = Query(50, ge=1, le=1000),
    store: ArchiveStore = Depends(get_store),
):
    return activity_service.list_activity(store, limit)
