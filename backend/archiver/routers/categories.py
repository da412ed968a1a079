from fastapi import APIRouter, Depends

from archiver.dependencies import get_store, require_admin
from archiver.schemas.category import CategoryCreate, CategoryResponse, CategoryUpdate
from archiver.schemas.common import MessageResponse
from archiver.services import category_service
from archiver.store.base import ArchiveStore

router = APIRouter(
    prefix="/categories",
    tags=["categories"],
    dependencies=[Depends(require_admin)],
)


@router.get("", response_model=list[CategoryResponse])
def list_categories(store: ArchiveStore = Depends(get_store)):
    return category_service.list_categories(store)


@router.post("", response_model=CategoryResponse, status_code=201)
def create_category(req: CategoryCreate, store: ArchiveStore = Depends(get_store)):
    return category_service.create_category(store, req.name, req.color)


@router.get("/{category_id}", response_model=CategoryResponse)
def get_category(category_id: str, store: ArchiveStore = Depends(get_store)):
    return category_service.get_category(store, category_id)


@router.put("/{category_id}", response_model=CategoryResponse)
def update_category(category_id: str, req: CategoryUpdate, store: ArchiveStore = Depends(get_store)):
    return category_service.update_category(store, category_id, req.name, req.color)


@router.delete("/{category_id}", response_model=MessageResponse)
def delete_category(category_id: str, store: ArchiveStore = Depends(get_store)):
    category_service.delete_category(store, category_id)
    return MessageResponse(message="Category deleted successfully")
