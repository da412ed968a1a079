from fastapi import APIRouter, Depends

from archiver.dependencies import get_store, require_admin
from archiver.schemas.dashboard import DashboardResponse
from archiver.services import activity_service
from archiver.store.base import ArchiveStore

router = APIRouter(prefix="/dashboard", tags=["dashboard"], dependencies=[Depends(require_admin)])


@router.get("", response_model=DashboardResponse)
def dashboard(store: ArchiveStore = Depends(get_store)):
    return activity_service.dashboard_summary(store)
