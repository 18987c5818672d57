"""
Collection, document, field and query endpoints.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Request, Response, status

from bounce.api.deps import CanDelete, CanRead, CanWrite, DataSourceDep, JsonObject
from bounce.api.hal import Embedded, link, represent, resource_links
from bounce.kernel.data_source import DataSource
from bounce.kernel.paths import ROOT_PATH, governance_href, is_files_collection, join
from bounce.kernel.query import parse_query_options, validate_query

router = APIRouter()


def _without_hypermedia(document: Dict[str, Any]) -> Dict[str, Any]:
    """Links are synthesized on the way out and never stored."""
    return {key: value for key, value in document.items() if key not in ("_links", "_embedded")}


def project_file(document: Dict[str, Any]) -> Dict[str, Any]:
    """Narrow a file document to its public metadata."""
    return {
        "_id": document["_id"],
        "size": document.get("length"),
        "contentType": document.get("contentType"),
    }


async def read_document(
    request: Request,
    data_source: DataSource,
    collection: str,
    document_id: str,
) -> Response:
    """Shared by the document route and the non-binary file route."""
    document = await data_source.get_document(collection, document_id)
    if is_files_collection(collection):
        document = project_file(document)
    return represent(request, document, resource_links(join(collection, document_id)))


@router.get("/")
async def list_collections(
    request: Request,
    user: CanRead,
    data_source: DataSourceDep,
):
    """List all collections."""
    collections = await data_source.list_collections()
    return represent(
        request,
        {},
        resource_links(ROOT_PATH),
        Embedded(
            "collections",
            collections,
            lambda collection: resource_links(join(collection["name"])),
        ),
    )


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_collection(
    user: CanWrite,
    body: JsonObject,
    data_source: DataSourceDep,
):
    """Create a collection from a body carrying at least a ``name``."""
    name = await data_source.create_collection(_without_hypermedia(body))
    return Response(status_code=status.HTTP_201_CREATED, headers={"Location": join(name)})


@router.get("/{collection}")
async def get_collection(
    request: Request,
    collection: str,
    user: CanRead,
    data_source: DataSourceDep,
):
    """Describe a collection."""
    description = await data_source.get_collection(collection)
    return represent(request, description, resource_links(join(collection)))


@router.put("/{collection}", status_code=status.HTTP_204_NO_CONTENT)
async def update_collection(
    collection: str,
    user: CanWrite,
    body: JsonObject,
    data_source: DataSourceDep,
):
    """Replace a collection's attributes."""
    await data_source.update_collection(collection, _without_hypermedia(body))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{collection}")
async def delete_collection(
    collection: str,
    user: CanDelete,
    data_source: DataSourceDep,
):
    """Drop a collection and every document in it."""
    await data_source.delete_collection(collection)
    return Response(status_code=status.HTTP_200_OK)


@router.post("/{collection}/query")
async def query_collection(
    request: Request,
    collection: str,
    user: CanRead,
    body: JsonObject,
    data_source: DataSourceDep,
    limit: Optional[str] = None,
    skip: Optional[str] = None,
    sort: Optional[str] = None,
):
    """
    Search a collection.

    The body holds field conditions; ``limit``, ``skip`` and ``sort`` come
    from the query string.
    """
    query = validate_query(body)
    options = parse_query_options(limit=limit, skip=skip, sort=sort)
    documents = await data_source.list_documents(collection, query, options)
    if is_files_collection(collection):
        documents = [project_file(document) for document in documents]

    return represent(
        request,
        {},
        {
            "self": link(request.url.path),
            "governance": link(governance_href(join(collection))),
        },
        Embedded(
            "results",
            documents,
            lambda document: resource_links(join(collection, document["_id"])),
        ),
    )


@router.post("/{collection}", status_code=status.HTTP_201_CREATED)
async def insert_document(
    collection: str,
    user: CanWrite,
    body: JsonObject,
    data_source: DataSourceDep,
):
    """Insert a document; its identity comes back in ``Location``."""
    document_id = await data_source.insert_document(collection, _without_hypermedia(body))
    return Response(
        status_code=status.HTTP_201_CREATED,
        headers={"Location": join(collection, document_id)},
    )


@router.get("/{collection}/{document}")
async def get_document(
    request: Request,
    collection: str,
    document: str,
    user: CanRead,
    data_source: DataSourceDep,
):
    """Read a single document."""
    return await read_document(request, data_source, collection, document)


@router.put("/{collection}/{document}", status_code=status.HTTP_204_NO_CONTENT)
async def update_document(
    collection: str,
    document: str,
    user: CanWrite,
    body: JsonObject,
    data_source: DataSourceDep,
):
    """Replace a document."""
    await data_source.update_document(collection, document, _without_hypermedia(body))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{collection}/{document}")
async def delete_document(
    collection: str,
    document: str,
    user: CanDelete,
    data_source: DataSourceDep,
):
    await data_source.delete_document(collection, document)
    return Response(status_code=status.HTTP_200_OK)


@router.get("/{collection}/{document}/{field}")
async def get_field(
    request: Request,
    collection: str,
    document: str,
    field: str,
    user: CanRead,
    data_source: DataSourceDep,
):
    """Read one field, wrapped as a single-key object."""
    value = await data_source.get_field(collection, document, field)
    return represent(
        request,
        {field: value},
        resource_links(join(collection, document, field), governance_of=join(collection, document)),
    )
