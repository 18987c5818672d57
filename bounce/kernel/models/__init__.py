"""
Storage models backing the SQL data source.
"""

from bounce.kernel.models.base import Base, TimestampMixin, generate_id
from bounce.kernel.models.collection import Collection, Document
from bounce.kernel.models.file import StoredFile
from bounce.kernel.models.user import User
from bounce.kernel.models.permission import PermissionRecord

__all__ = [
    "Base",
    "TimestampMixin",
    "generate_id",
    "Collection",
    "Document",
    "StoredFile",
    "User",
    "PermissionRecord",
]
