"""
API routes.

Inclusion order is matching order: fixed paths (governance, users, files)
come before the generic collection/document patterns they would otherwise
fall into.
"""

from fastapi import APIRouter

from bounce.api.routes import collections, files, governance, users

router = APIRouter()

router.include_router(governance.router, tags=["Governance"])
router.include_router(users.router, tags=["Users"])
router.include_router(files.router, tags=["Files"])
router.include_router(collections.router, tags=["Collections"])
