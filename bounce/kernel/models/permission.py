"""
Permission record model.

One row per governed resource path. ``record`` holds the access-control
payload and, when set, the ``_inherit`` pointer.
"""

from datetime import datetime
from typing import Any, Dict

from sqlalchemy import JSON, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from bounce.kernel.models.base import Base


class PermissionRecord(Base):
    """Stored governance for a single resource path."""

    __tablename__ = "permissions"

    resource: Mapped[str] = mapped_column(String(1024), primary_key=True)
    record: Mapped[Dict[str, Any]] = mapped_column(
        JSON,
        default=dict,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<PermissionRecord {self.resource}>"
