"""
Collection and document storage models.

Documents are stored as JSON blobs; the store does not know their shape.
"""

from typing import Any, Dict

from sqlalchemy import JSON, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from bounce.kernel.models.base import Base, TimestampMixin, generate_id


class Collection(Base, TimestampMixin):
    """A named collection with free-form attributes."""

    __tablename__ = "collections"

    name: Mapped[str] = mapped_column(String(255), primary_key=True)
    attributes: Mapped[Dict[str, Any]] = mapped_column(
        JSON,
        default=dict,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Collection {self.name}>"


class Document(Base, TimestampMixin):
    """A JSON document inside a collection."""

    __tablename__ = "documents"

    # Insertion order, used as the natural sort order of listings
    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        index=True,
        default=generate_id,
        nullable=False,
    )
    collection: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("collections.name", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    body: Mapped[Dict[str, Any]] = mapped_column(
        JSON,
        default=dict,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Document {self.collection}/{self.id}>"
