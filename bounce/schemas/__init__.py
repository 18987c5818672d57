"""
Pydantic schemas for request validation and error bodies.
"""

from bounce.schemas.auth import Credentials, UserCreate
from bounce.schemas.common import ErrorResponse, HealthResponse

__all__ = [
    "Credentials",
    "UserCreate",
    "ErrorResponse",
    "HealthResponse",
]
