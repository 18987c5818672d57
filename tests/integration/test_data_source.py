"""
Integration tests for SqlDataSource against a temporary SQLite database.
"""

import pytest

from bounce.errors import BadRequest, NotFound
from bounce.kernel.query import QueryOptions


@pytest.fixture
def data_source(app):
    return app.state.data_source


class TestDocumentsStore:

    @pytest.mark.asyncio
    async def test_insert_creates_collection(self, data_source):
        document_id = await data_source.insert_document("notes", {"text": "hi", "_id": "ignored"})

        assert len(document_id) == 32
        assert document_id != "ignored"
        assert (await data_source.get_collection("notes"))["count"] == 1
        assert await data_source.get_document("notes", document_id) == {"text": "hi", "_id": document_id}

    @pytest.mark.asyncio
    async def test_insertion_order_is_kept(self, data_source):
        for n in range(5):
            await data_source.insert_document("notes", {"n": n})

        documents = await data_source.list_documents("notes", {}, QueryOptions())

        assert [doc["n"] for doc in documents] == [0, 1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_reserved_names(self, data_source):
        with pytest.raises(BadRequest):
            await data_source.insert_document("ming.users", {"username": "x"})
        with pytest.raises(BadRequest):
            await data_source.insert_document("pics.files", {"size": 1})
        with pytest.raises(BadRequest):
            await data_source.create_collection({"name": "ming.users"})
        with pytest.raises(BadRequest):
            await data_source.create_collection({"name": "bounce.users"})
        with pytest.raises(BadRequest):
            await data_source.insert_document("bounce.users", {"username": "x"})
        with pytest.raises(BadRequest):
            await data_source.create_collection({"name": "a/b"})

    @pytest.mark.asyncio
    async def test_delete_collection_drops_documents(self, data_source):
        document_id = await data_source.insert_document("notes", {"text": "hi"})

        await data_source.delete_collection("notes")

        with pytest.raises(NotFound):
            await data_source.get_document("notes", document_id)

    @pytest.mark.asyncio
    async def test_document_from_other_collection_not_found(self, data_source):
        document_id = await data_source.insert_document("notes", {"text": "hi"})

        with pytest.raises(NotFound):
            await data_source.get_document("other", document_id)


class TestUsersStore:

    @pytest.mark.asyncio
    async def test_duplicate_username(self, data_source):
        await data_source.register_user("ann", "hash")

        with pytest.raises(BadRequest):
            await data_source.register_user("ann", "other")

    @pytest.mark.asyncio
    async def test_password_hash_lookup(self, data_source):
        await data_source.register_user("ann", "hash")

        assert await data_source.get_password_hash("ann") == "hash"
        assert await data_source.get_password_hash("nobody") is None

    @pytest.mark.asyncio
    async def test_update_password_hash(self, data_source):
        await data_source.register_user("ann", "old")

        await data_source.update_password_hash("ann", "new")

        assert await data_source.get_password_hash("ann") == "new"
        with pytest.raises(NotFound):
            await data_source.update_password_hash("nobody", "new")


class TestPermissionsStore:

    @pytest.mark.asyncio
    async def test_upsert(self, data_source):
        assert await data_source.get_permissions("/notes") is None

        await data_source.update_permissions("/notes", {"read": ["*"]})
        await data_source.update_permissions("/notes", {"_inherit": "/"})

        assert await data_source.get_permissions("/notes") == {"_inherit": "/"}
