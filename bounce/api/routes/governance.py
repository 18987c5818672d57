"""
Governance endpoints: read and replace the permission record of a resource.

The resource is named by the ``resource`` query parameter. Its inheritance
pointer travels as a ``Link: <...>; rel="inherit"`` header for
``application/json`` and as ``_links.inherit`` for ``application/hal+json``.
"""

from fastapi import APIRouter, Depends, Request, Response, status

from bounce.api.deps import CanGovern, Governance, GovernedResource, JsonBody
from bounce.api.hal import (
    HAL_JSON,
    JSON,
    JSON_FIRST,
    decode_permissions,
    link,
    represent,
    request_media_type,
)
from bounce.kernel.paths import GOVERNANCE_PATH, governance_href

router = APIRouter()


@router.get(GOVERNANCE_PATH)
async def get_permissions(
    request: Request,
    resource: GovernedResource,
    user: CanGovern,
    governance: Governance,
):
    """Permission record of ``resource``, or the default when none is stored."""
    record, inherit = await governance.get_record(resource)
    links = {"self": link(governance_href(resource))}
    if inherit is not None:
        links["inherit"] = link(inherit)
    return represent(request, record, links, offered=JSON_FIRST)


@router.put(GOVERNANCE_PATH, status_code=status.HTTP_204_NO_CONTENT)
async def update_permissions(
    request: Request,
    resource: GovernedResource,
    user: CanGovern,
    governance: Governance,
    body=Depends(JsonBody(JSON, HAL_JSON)),
):
    """Replace the permission record of ``resource``."""
    link_header = ", ".join(request.headers.getlist("link"))
    payload, inherit = decode_permissions(
        request_media_type(request),
        body,
        {"link": link_header},
    )
    await governance.update_record(resource, payload, inherit)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
