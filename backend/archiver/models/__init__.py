from archiver.models.category import Category
from archiver.models.document import Document
from archiver.models.activity import ActivityLog

__all__ = ["Category", "Document", "ActivityLog"]
