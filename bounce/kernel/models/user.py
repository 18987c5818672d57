"""
User model for identity management.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from bounce.kernel.models.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    """User account; the username is the identity and never changes."""

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(255), primary_key=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    def __repr__(self) -> str:
        return f"<User {self.username}>"
