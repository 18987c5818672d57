"""
Resource path conventions shared by the router, the data source and the
representation layer.
"""

from typing import Optional
from urllib.parse import quote

FILES_SUFFIX = ".files"
USERS_COLLECTION = "ming.users"
# Older clients address users here; both names are reserved
LEGACY_USERS_COLLECTION = "bounce.users"
USER_COLLECTIONS = (USERS_COLLECTION, LEGACY_USERS_COLLECTION)
GOVERNANCE_PATH = "/.well-known/governance"
HEALTH_PATH = "/.well-known/health"
ROOT_PATH = "/"


def file_prefix(collection: str) -> Optional[str]:
    """Return the file prefix when ``collection`` addresses binary files."""
    if collection.endswith(FILES_SUFFIX) and len(collection) > len(FILES_SUFFIX):
        return collection[: -len(FILES_SUFFIX)]
    return None


def is_files_collection(collection: str) -> bool:
    return file_prefix(collection) is not None


def join(*parts: str) -> str:
    """Build a resource path from path components."""
    return "/" + "/".join(part.strip("/") for part in parts if part)


def governance_href(resource: str) -> str:
    """Address of the governance record for ``resource``."""
    return f"{GOVERNANCE_PATH}?resource={quote(resource, safe='/.')}"
