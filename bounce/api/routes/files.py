"""
Binary file endpoints.

Files live in ``/{prefix}.files``. Uploads take the raw request body;
downloads return raw bytes only when ``binary`` is set, otherwise the file
reads like any other document (its metadata projection).
"""

from typing import Optional

from fastapi import APIRouter, Request, Response, status

from bounce.api.deps import CanDelete, CanRead, CanWrite, DataSourceDep
from bounce.api.hal import render_link_header, resource_links
from bounce.api.routes.collections import read_document
from bounce.errors import BadRequest
from bounce.kernel.paths import FILES_SUFFIX, join

router = APIRouter()

BINARY_FLAGS = ("1", "true")


@router.post("/{prefix}.files", status_code=status.HTTP_201_CREATED)
async def upload_file(
    request: Request,
    prefix: str,
    user: CanWrite,
    data_source: DataSourceDep,
):
    """Store the request body as a file under ``prefix``."""
    data = await request.body()
    if not data:
        raise BadRequest("Empty body.")

    content_type = request.headers.get("content-type", "application/octet-stream")
    file_id = await data_source.insert_file(prefix, content_type, data)
    return Response(
        status_code=status.HTTP_201_CREATED,
        headers={"Location": join(prefix + FILES_SUFFIX, file_id)},
    )


@router.get("/{prefix}.files/{file}")
async def download_file(
    request: Request,
    prefix: str,
    file: str,
    user: CanRead,
    data_source: DataSourceDep,
    binary: Optional[str] = None,
):
    """Raw content with ``?binary=1``, the file's document otherwise."""
    if binary not in BINARY_FLAGS:
        return await read_document(request, data_source, prefix + FILES_SUFFIX, file)

    blob = await data_source.get_file(prefix, file)
    return Response(
        content=blob.data,
        media_type=blob.content_type,
        headers={"Link": render_link_header(resource_links(request.url.path))},
    )


@router.delete("/{prefix}.files/{file}")
async def delete_file(
    prefix: str,
    file: str,
    user: CanDelete,
    data_source: DataSourceDep,
):
    await data_source.delete_file(prefix, file)
    return Response(status_code=status.HTTP_200_OK)
