"""
Binary file storage model.

Files live under a prefix; ``/{prefix}.files`` is the collection that
addresses them over HTTP.
"""

from datetime import datetime

from sqlalchemy import DateTime, Integer, LargeBinary, String, func
from sqlalchemy.orm import Mapped, mapped_column

from bounce.kernel.models.base import Base, generate_id


class StoredFile(Base):
    """A binary blob plus the metadata exposed as its document."""

    __tablename__ = "files"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=generate_id)
    prefix: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    content_type: Mapped[str] = mapped_column(
        String(255),
        default="application/octet-stream",
        nullable=False,
    )
    length: Mapped[int] = mapped_column(Integer, nullable=False)
    data: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    upload_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<StoredFile {self.prefix}.files/{self.id} {self.length}b>"
