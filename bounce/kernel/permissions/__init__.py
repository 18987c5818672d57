"""
Permission Core - per-resource governance.
"""

from bounce.kernel.permissions.permission_service import (
    AUTHENTICATED,
    INHERIT_KEY,
    PUBLIC,
    Authorizer,
    GovernanceService,
    Operation,
    PermissionResolver,
    ResolvedPermissions,
    split_record,
    validate_payload,
    validate_resource,
)

__all__ = [
    "AUTHENTICATED",
    "INHERIT_KEY",
    "PUBLIC",
    "Authorizer",
    "GovernanceService",
    "Operation",
    "PermissionResolver",
    "ResolvedPermissions",
    "split_record",
    "validate_payload",
    "validate_resource",
]
