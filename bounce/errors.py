"""
Error taxonomy for the Bounce API.

Every component raises one of these; the exception handler in
``bounce.main`` is the single place that turns them into HTTP responses.
"""

from typing import Optional


class BounceError(Exception):
    """Base class for all classified errors."""

    status_code: int = 500
    default_detail: str = "Internal Server Error"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    def headers(self) -> dict:
        return {}


class BadRequest(BounceError):
    """Missing parameter, malformed body, empty upload."""

    status_code = 400
    default_detail = "Bad Request"


class Unauthorized(BounceError):
    """No usable identity where one is required."""

    status_code = 401
    default_detail = "Unauthorized"

    def __init__(self, detail: Optional[str] = None, realm: str = "Bounce"):
        super().__init__(detail)
        self.realm = realm

    def headers(self) -> dict:
        return {"WWW-Authenticate": f'Basic realm="{self.realm}"'}


class Forbidden(BounceError):
    """Identity present but not permitted."""

    status_code = 403
    default_detail = "Forbidden"


class NotFound(BounceError):
    status_code = 404
    default_detail = "Not Found"


class UnsupportedMediaType(BounceError):
    status_code = 415
    default_detail = "Unsupported Media Type"


class InternalError(BounceError):
    """Data-layer failure or any other unexpected condition."""

    status_code = 500
    default_detail = "Internal Server Error"


__all__ = [
    "BounceError",
    "BadRequest",
    "Unauthorized",
    "Forbidden",
    "NotFound",
    "UnsupportedMediaType",
    "InternalError",
]
