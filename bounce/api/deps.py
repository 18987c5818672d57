"""
FastAPI dependencies: services, credentials, authentication, authorization
and body decoding.

Routes list these in the order they must run. A failing dependency stops
the chain, so nothing after it (in particular the data operation) runs.
"""

from typing import Annotated, Any, Callable, Dict, Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBasic

from bounce.api.hal import JSON, request_media_type
from bounce.errors import BadRequest, UnsupportedMediaType
from bounce.kernel.data_source import DataSource
from bounce.kernel.identity import IdentityService, Principal
from bounce.kernel.paths import FILES_SUFFIX, join
from bounce.kernel.permissions import GovernanceService, Operation, validate_resource
from bounce.schemas.auth import Credentials


def get_data_source(request: Request) -> DataSource:
    return request.app.state.data_source


def get_identity_service(request: Request) -> IdentityService:
    return request.app.state.identity_service


def get_governance(request: Request) -> GovernanceService:
    return request.app.state.governance


DataSourceDep = Annotated[DataSource, Depends(get_data_source)]
Identity = Annotated[IdentityService, Depends(get_identity_service)]
Governance = Annotated[GovernanceService, Depends(get_governance)]


class CredentialResolver(HTTPBasic):
    """
    HTTP Basic credentials, or ``None``.

    Malformed headers are treated like missing ones; rejecting them is the
    authorizer's decision, not the parser's.
    """

    async def __call__(self, request: Request) -> Optional[Credentials]:  # type: ignore[override]
        try:
            basic = await super().__call__(request)
        except HTTPException:
            return None
        if basic is None:
            return None
        return Credentials(username=basic.username, password=basic.password)


resolve_credentials = CredentialResolver(auto_error=False)


async def get_current_user_optional(
    credentials: Annotated[Optional[Credentials], Depends(resolve_credentials)],
    identity: Identity,
) -> Optional[Principal]:
    """Authenticated principal, or ``None`` for anonymous requests."""
    return await identity.authenticate(credentials)


OptionalUser = Annotated[Optional[Principal], Depends(get_current_user_optional)]


def resource_from_path(request: Request) -> str:
    """
    Governed resource addressed by the route's path parameters.

    Fields and queries are governed by their document and collection.
    """
    params = request.path_params
    if "prefix" in params:
        return join(params["prefix"] + FILES_SUFFIX, params.get("file", ""))
    return join(params.get("collection", ""), params.get("document", ""))


def resource_from_query(request: Request) -> str:
    return validate_resource(request.query_params.get("resource"))


async def require_resource_param(request: Request) -> str:
    """The ``resource`` query parameter of governance endpoints."""
    return resource_from_query(request)


GovernedResource = Annotated[str, Depends(require_resource_param)]


class PermissionChecker:
    """
    Dependency that authorizes an operation on the request's resource.

    Usage:
        @router.delete("/{collection}")
        async def delete_collection(
            collection: str,
            user: Annotated[Optional[Principal], Depends(PermissionChecker(Operation.DELETE))],
            ...
        ):
    """

    def __init__(
        self,
        operation: Operation,
        resource: Callable[[Request], str] = resource_from_path,
    ):
        self.operation = operation
        self.resource = resource

    async def __call__(
        self,
        request: Request,
        user: OptionalUser,
        governance: Governance,
    ) -> Optional[Principal]:
        await governance.authorize(user, self.resource(request), self.operation)
        return user


CanRead = Annotated[Optional[Principal], Depends(PermissionChecker(Operation.READ))]
CanWrite = Annotated[Optional[Principal], Depends(PermissionChecker(Operation.WRITE))]
CanDelete = Annotated[Optional[Principal], Depends(PermissionChecker(Operation.DELETE))]
CanGovern = Annotated[
    Optional[Principal],
    Depends(PermissionChecker(Operation.GOVERN, resource_from_query)),
]


class JsonBody:
    """Parse a JSON request body after checking its declared media type."""

    def __init__(self, *media_types: str, require_object: bool = True):
        self.media_types = media_types or (JSON,)
        self.require_object = require_object

    async def __call__(self, request: Request) -> Any:
        media_type = request_media_type(request)
        if media_type not in self.media_types:
            raise UnsupportedMediaType(
                f"Expected {' or '.join(self.media_types)}, got \"{media_type or 'nothing'}\"."
            )
        try:
            body = await request.json()
        except ValueError:
            raise BadRequest("Malformed JSON body.")
        if self.require_object and not isinstance(body, dict):
            raise BadRequest("Body must be a JSON object.")
        return body


JsonObject = Annotated[Dict[str, Any], Depends(JsonBody(JSON))]
