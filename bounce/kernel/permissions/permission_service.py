"""
Governance: permission resolution and authorization.

A permission record is stored per resource path. Its access-control payload
maps an operation name to the principals allowed to perform it:

    {"read": ["*"], "write": ["@users"], "govern": ["alice"], "_inherit": "/docs"}

Principals are usernames, ``*`` (anyone, anonymous included) or ``@users``
(any authenticated user). ``_inherit`` points at another resource whose
payload applies when the local record has none of its own.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from bounce.errors import BadRequest, Forbidden, Unauthorized
from bounce.kernel.data_source import DataSource
from bounce.kernel.identity.identity_service import Principal
from bounce.logging_config import get_logger

logger = get_logger(__name__)

PUBLIC = "*"
AUTHENTICATED = "@users"
INHERIT_KEY = "_inherit"


class Operation(str, Enum):
    """Operations a permission record can grant."""
    READ = "read"
    WRITE = "write"
    DELETE = "delete"
    GOVERN = "govern"


@dataclass
class ResolvedPermissions:
    """
    Outcome of resolving governance for one resource.

    ``record`` is the payload that applies, ``inherit`` the local pointer
    (reported even when it was not followed) and ``source`` the path the
    payload came from, ``None`` when the configured default applies.
    """

    resource: str
    record: Dict[str, List[str]] = field(default_factory=dict)
    inherit: Optional[str] = None
    source: Optional[str] = None

    @property
    def is_default(self) -> bool:
        return self.source is None


def split_record(stored: Dict[str, Any]) -> Tuple[Dict[str, Any], Optional[str]]:
    """Separate a stored record into its payload and inheritance pointer."""
    payload = {key: value for key, value in stored.items() if key != INHERIT_KEY}
    inherit = stored.get(INHERIT_KEY)
    return payload, inherit if isinstance(inherit, str) else None


def validate_payload(payload: Any) -> Dict[str, List[str]]:
    """Check that a payload only names known operations and string principals."""
    if not isinstance(payload, dict):
        raise BadRequest("Permissions must be a JSON object.")
    known = {operation.value for operation in Operation}
    for key, principals in payload.items():
        if key not in known:
            raise BadRequest(f"Unknown operation \"{key}\".")
        if not isinstance(principals, list) or not all(isinstance(p, str) for p in principals):
            raise BadRequest(f"\"{key}\" must be a list of principals.")
    return payload


def validate_resource(resource: Optional[str], name: str = "resource") -> str:
    if resource is None:
        raise BadRequest(f"Missing \"{name}\" URL parameter.")
    if not resource.startswith("/"):
        raise BadRequest(f"\"{name}\" must be an absolute path.")
    return resource


class PermissionResolver:
    """
    Resolves the effective permission record of a resource path.

    Policy:
    1. A local record with its own payload applies as is.
    2. A local record holding only ``_inherit`` defers to the target's record,
       following at most ``max_depth`` pointers and never revisiting a path.
    3. Anything else gets the configured default.
    """

    def __init__(
        self,
        data_source: DataSource,
        default_record: Dict[str, List[str]],
        max_depth: int = 1,
    ):
        self.data_source = data_source
        self.default_record = default_record
        self.max_depth = max_depth

    def default_for(self, resource: str, inherit: Optional[str] = None) -> ResolvedPermissions:
        return ResolvedPermissions(
            resource=resource,
            record={key: list(value) for key, value in self.default_record.items()},
            inherit=inherit,
        )

    async def resolve(self, resource: str) -> ResolvedPermissions:
        stored = await self.data_source.get_permissions(resource)
        if stored is None:
            return self.default_for(resource)

        payload, inherit = split_record(stored)
        if payload:
            return ResolvedPermissions(resource, payload, inherit, source=resource)
        if inherit is None:
            return self.default_for(resource)

        visited = {resource}
        target: Optional[str] = inherit
        hops = 0
        while target is not None and hops < self.max_depth:
            if target in visited:
                logger.warning(
                    "Inheritance cycle, using default permissions",
                    extra={"resource": resource, "target": target},
                )
                break
            visited.add(target)
            hops += 1

            stored = await self.data_source.get_permissions(target)
            if stored is None:
                break
            target_payload, next_target = split_record(stored)
            if target_payload:
                return ResolvedPermissions(resource, target_payload, inherit, source=target)
            target = next_target

        return self.default_for(resource, inherit)


class Authorizer:
    """Pure grant/deny decision over a resolved payload."""

    @staticmethod
    def is_allowed(
        user: Optional[Principal],
        record: Dict[str, List[str]],
        operation: Operation,
    ) -> bool:
        principals = record.get(operation.value) or []
        if PUBLIC in principals:
            return True
        if user is None:
            return False
        return AUTHENTICATED in principals or user.username in principals


class GovernanceService:
    """Authorization gate and governance record management."""

    def __init__(self, resolver: PermissionResolver, realm: str = "Bounce"):
        self.resolver = resolver
        self.realm = realm

    @property
    def data_source(self) -> DataSource:
        return self.resolver.data_source

    async def authorize(
        self,
        user: Optional[Principal],
        resource: str,
        operation: Operation,
    ) -> ResolvedPermissions:
        """
        Gate an operation on a resource.

        Raises:
            Unauthorized: No identity and the record does not grant anonymous access
            Forbidden: Identity present but not granted
        """
        resolved = await self.resolver.resolve(resource)
        if Authorizer.is_allowed(user, resolved.record, operation):
            return resolved

        if user is None:
            raise Unauthorized(realm=self.realm)
        logger.info(
            "Permission denied",
            extra={
                "username": user.username,
                "resource": resource,
                "operation": operation.value,
            },
        )
        raise Forbidden(f"\"{operation.value}\" is not permitted on \"{resource}\".")

    async def get_record(self, resource: str) -> Tuple[Dict[str, Any], Optional[str]]:
        """
        Governance record as exposed to clients: the stored payload and
        pointer, or the default payload when nothing is stored.
        """
        stored = await self.data_source.get_permissions(resource)
        if stored is None:
            return self.resolver.default_for(resource).record, None
        return split_record(stored)

    async def update_record(
        self,
        resource: str,
        payload: Dict[str, Any],
        inherit: Optional[str] = None,
    ) -> None:
        """Replace the record of one resource."""
        record: Dict[str, Any] = dict(validate_payload(payload))
        if inherit is not None:
            record[INHERIT_KEY] = validate_resource(inherit, name="inherit")
        await self.data_source.update_permissions(resource, record)
        logger.info(
            "Permissions updated",
            extra={"resource": resource, "inherit": inherit},
        )
