"""
Integration tests for collection, document, field and query endpoints.
"""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient

HAL = {"Accept": "application/hal+json"}
PLAIN = {"Accept": "application/json"}


async def insert(client: AsyncClient, auth, collection: str, document: dict) -> str:
    response = await client.post(f"/{collection}", json=document, auth=auth)
    assert response.status_code == 201, response.text
    return response.headers["location"]


class TestAuthentication:
    """Requests against the default record (authenticated users only)."""

    @pytest.mark.asyncio
    async def test_anonymous_write_is_challenged(self, app, client: AsyncClient):
        with patch.object(app.state.data_source, "insert_document", new=AsyncMock()) as insert_mock:
            response = await client.post("/things", json={"a": 1})

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == 'Basic realm="Bounce"'
        insert_mock.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_wrong_password_is_anonymous(self, client: AsyncClient, alice):
        response = await client.get("/", auth=("alice", "not-the-password"))

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_user_is_anonymous(self, client: AsyncClient):
        response = await client.get("/", auth=("ghost", "whatever123"))

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_malformed_basic_header_is_anonymous(self, client: AsyncClient):
        response = await client.get("/", headers={"Authorization": "Basic %%%"})

        assert response.status_code == 401


class TestDocuments:
    """Document lifecycle through the API."""

    @pytest.mark.asyncio
    async def test_insert_and_read_hal(self, client: AsyncClient, alice):
        location = await insert(client, alice, "things", {"title": "first", "n": 1})
        document_id = location.rsplit("/", 1)[1]

        response = await client.get(location, auth=alice, headers=HAL)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/hal+json")
        body = response.json()
        assert body["title"] == "first"
        assert "_id" not in body
        assert body["_links"]["self"]["href"] == f"/things/{document_id}"
        assert body["_links"]["governance"]["href"] == (
            f"/.well-known/governance?resource=/things/{document_id}"
        )

    @pytest.mark.asyncio
    async def test_hal_is_the_default_representation(self, client: AsyncClient, alice):
        location = await insert(client, alice, "things", {"title": "x"})

        response = await client.get(location, auth=alice)

        assert response.headers["content-type"].startswith("application/hal+json")

    @pytest.mark.asyncio
    async def test_plain_json_keeps_id_and_uses_link_header(self, client: AsyncClient, alice):
        location = await insert(client, alice, "things", {"title": "x"})

        response = await client.get(location, auth=alice, headers=PLAIN)

        assert response.headers["content-type"].startswith("application/json")
        body = response.json()
        assert body["_id"] == location.rsplit("/", 1)[1]
        assert "_links" not in body
        assert f'<{location}>; rel="self"' in response.headers["link"]

    @pytest.mark.asyncio
    async def test_client_links_are_not_stored(self, client: AsyncClient, alice):
        location = await insert(
            client, alice, "things",
            {"title": "x", "_id": "forged", "_links": {"self": {"href": "/elsewhere"}}},
        )

        body = (await client.get(location, auth=alice, headers=PLAIN)).json()

        assert body["_id"] != "forged"
        assert "_links" not in body

    @pytest.mark.asyncio
    async def test_update_and_delete(self, client: AsyncClient, alice):
        location = await insert(client, alice, "things", {"title": "old"})

        response = await client.put(location, json={"title": "new"}, auth=alice)
        assert response.status_code == 204
        body = (await client.get(location, auth=alice)).json()
        assert body["title"] == "new"

        response = await client.delete(location, auth=alice)
        assert response.status_code == 200
        response = await client.get(location, auth=alice)
        assert response.status_code == 404
        assert "detail" in response.json()

    @pytest.mark.asyncio
    async def test_field(self, client: AsyncClient, alice):
        location = await insert(client, alice, "things", {"title": "x", "n": 7})

        response = await client.get(f"{location}/n", auth=alice, headers=HAL)

        body = response.json()
        assert body["n"] == 7
        assert body["_links"]["self"]["href"] == f"{location}/n"
        assert body["_links"]["governance"]["href"].endswith(f"resource={location}")

        response = await client.get(f"{location}/missing", auth=alice)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_wrong_media_type(self, client: AsyncClient, alice):
        response = await client.post(
            "/things",
            content=b"title=x",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            auth=alice,
        )

        assert response.status_code == 415

    @pytest.mark.asyncio
    async def test_malformed_and_non_object_bodies(self, client: AsyncClient, alice):
        response = await client.post(
            "/things",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
            auth=alice,
        )
        assert response.status_code == 400

        response = await client.post("/things", json=[1, 2], auth=alice)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_users_collection_is_reserved(self, client: AsyncClient, alice):
        response = await client.post("/", json={"name": "ming.users"}, auth=alice)

        assert response.status_code == 400


class TestCollections:
    """Collection endpoints."""

    @pytest.mark.asyncio
    async def test_create_describe_list_delete(self, client: AsyncClient, alice):
        response = await client.post("/", json={"name": "books", "kind": "library"}, auth=alice)
        assert response.status_code == 201
        assert response.headers["location"] == "/books"

        await insert(client, alice, "books", {"title": "Dune"})

        body = (await client.get("/books", auth=alice, headers=PLAIN)).json()
        assert body["name"] == "books"
        assert body["kind"] == "library"
        assert body["count"] == 1

        body = (await client.get("/", auth=alice, headers=HAL)).json()
        names = [item["name"] for item in body["_embedded"]["collections"]]
        assert names == ["books"]
        assert body["_embedded"]["collections"][0]["_links"]["self"]["href"] == "/books"
        assert body["_links"]["self"]["href"] == "/"

        response = await client.delete("/books", auth=alice)
        assert response.status_code == 200
        assert (await client.get("/books", auth=alice)).status_code == 404

    @pytest.mark.asyncio
    async def test_duplicate_collection(self, client: AsyncClient, alice):
        await client.post("/", json={"name": "books"}, auth=alice)

        response = await client.post("/", json={"name": "books"}, auth=alice)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_update_collection(self, client: AsyncClient, alice):
        await client.post("/", json={"name": "books"}, auth=alice)

        response = await client.put("/books", json={"kind": "archive"}, auth=alice)

        assert response.status_code == 204
        body = (await client.get("/books", auth=alice, headers=PLAIN)).json()
        assert body["kind"] == "archive"


class TestQuery:
    """POST /{collection}/query."""

    @pytest.mark.asyncio
    async def test_filter_sort_limit(self, client: AsyncClient, alice):
        for n in (3, 1, 4, 1, 5):
            await insert(client, alice, "nums", {"n": n})

        response = await client.post(
            "/nums/query?sort=-n&limit=2",
            json={"n": {"$gte": 2}},
            auth=alice,
            headers=HAL,
        )

        assert response.status_code == 200
        body = response.json()
        results = body["_embedded"]["results"]
        assert [item["n"] for item in results] == [5, 4]
        assert all("_id" not in item for item in results)
        assert results[0]["_links"]["self"]["href"].startswith("/nums/")
        assert body["_links"]["self"]["href"] == "/nums/query"
        assert body["_links"]["governance"]["href"].endswith("resource=/nums")

    @pytest.mark.asyncio
    async def test_plain_json_results(self, client: AsyncClient, alice):
        await insert(client, alice, "nums", {"n": 1})

        response = await client.post("/nums/query", json={}, auth=alice, headers=PLAIN)

        body = response.json()
        assert [item["n"] for item in body["results"]] == [1]
        assert "_id" in body["results"][0]

    @pytest.mark.asyncio
    async def test_invalid_query(self, client: AsyncClient, alice):
        response = await client.post("/nums/query", json={"n": {"$near": 1}}, auth=alice)
        assert response.status_code == 400

        response = await client.post("/nums/query?limit=abc", json={}, auth=alice)
        assert response.status_code == 400


class TestWellKnown:

    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient):
        response = await client.get("/.well-known/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.headers["x-request-id"]

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, client: AsyncClient):
        response = await client.get("/.well-known/health", headers={"X-Request-ID": "abc123"})

        assert response.headers["x-request-id"] == "abc123"
