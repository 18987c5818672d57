"""
Authentication schemas.
"""

from pydantic import BaseModel, Field


class Credentials(BaseModel):
    """Normalized client credentials, independent of transport encoding."""

    username: str
    password: str


class UserCreate(BaseModel):
    """Self-registration request."""

    username: str = Field(..., min_length=1, max_length=255, pattern=r"^[^/?#]+$")
    password: str = Field(..., min_length=8, max_length=128)
