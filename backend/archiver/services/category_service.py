from archiver.errors import ConflictError, ConstraintError, NotFoundError, ValidationError
from archiver.schemas.category import CategoryResponse
from archiver.store.base import ArchiveStore


def _clean_name(name: str | None) -> str:
    if not (name or "").strip():
        raise ValidationError("Name is required")
    return name


def list_categories(store: ArchiveStore) -> list[CategoryResponse]:
    return store.list_categories()


def get_category(store: ArchiveStore, category_id) -> CategoryResponse:
    key = store.parse_key(category_id, "category ID")
    category = store.get_category(key)
    if category is None:
        raise NotFoundError("Category not found")
    return category


def create_category(store: ArchiveStore, name: str | None, color: str | None = None) -> CategoryResponse:
    name = _clean_name(name)
    if store.find_category_by_name(name) is not None:
        raise ConflictError("Category already exists")

    category = store.add_category(name, color)
    store.append_activity(f"Created category: {name}")
    return category


def update_category(store: ArchiveStore, category_id, name: str | None, color: str | None = None) -> CategoryResponse:
    key = store.parse_key(category_id, "category ID")
    if store.get_category(key) is None:
        raise NotFoundError("Category not found")
    name = _clean_name(name)

    clash = store.find_category_by_name(name)
    if clash is not None and clash.id != key:
        raise ConflictError("Category name already exists")

    category = store.update_category(key, name, color)
    store.append_activity(f"Updated category ID {key} to: {name}")
    return category


def delete_category(store: ArchiveStore, category_id) -> None:
    key = store.parse_key(category_id, "category ID")
    if store.count_documents(category_id=key) > 0:
        raise ConstraintError("Cannot delete category with associated documents")

    store.delete_category(key)
    store.append_activity(f"Deleted category ID {key}")
