"""
Data collaborator: the storage interface the API is written against, and
its SQLAlchemy implementation.

Entities cross this boundary as plain dicts. Documents carry their identity
in ``_id``; file documents expose ``_id``, ``length``, ``contentType`` and
``uploadDate``. Missing entities raise ``NotFound``; driver failures raise
``InternalError``.
"""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, AsyncIterator, Dict, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bounce.errors import BadRequest, InternalError, NotFound
from bounce.kernel.models import (
    Collection,
    Document,
    PermissionRecord,
    StoredFile,
    User,
)
from bounce.kernel.paths import FILES_SUFFIX, USER_COLLECTIONS, file_prefix
from bounce.kernel.query import QueryOptions, apply_options, matches
from bounce.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class FileBlob:
    """Raw file content with its declared media type."""

    content_type: str
    data: bytes

    @property
    def length(self) -> int:
        return len(self.data)


class DataSource(ABC):
    """Storage operations consumed by the API layer. All calls are async."""

    # Collections

    @abstractmethod
    async def list_collections(self) -> List[Dict[str, Any]]: ...

    @abstractmethod
    async def get_collection(self, name: str) -> Dict[str, Any]: ...

    @abstractmethod
    async def create_collection(self, spec: Dict[str, Any]) -> str: ...

    @abstractmethod
    async def update_collection(self, name: str, spec: Dict[str, Any]) -> None: ...

    @abstractmethod
    async def delete_collection(self, name: str) -> None: ...

    # Documents

    @abstractmethod
    async def list_documents(
        self,
        collection: str,
        query: Dict[str, Any],
        options: QueryOptions,
    ) -> List[Dict[str, Any]]: ...

    @abstractmethod
    async def get_document(self, collection: str, document_id: str) -> Dict[str, Any]: ...

    @abstractmethod
    async def insert_document(self, collection: str, document: Dict[str, Any]) -> str: ...

    @abstractmethod
    async def update_document(
        self,
        collection: str,
        document_id: str,
        document: Dict[str, Any],
    ) -> None: ...

    @abstractmethod
    async def delete_document(self, collection: str, document_id: str) -> None: ...

    @abstractmethod
    async def get_field(self, collection: str, document_id: str, field: str) -> Any: ...

    # Files

    @abstractmethod
    async def insert_file(self, prefix: str, content_type: str, data: bytes) -> str: ...

    @abstractmethod
    async def get_file(self, prefix: str, file_id: str) -> FileBlob: ...

    @abstractmethod
    async def delete_file(self, prefix: str, file_id: str) -> None: ...

    # Users

    @abstractmethod
    async def get_user(self, username: str) -> Dict[str, Any]: ...

    @abstractmethod
    async def get_password_hash(self, username: str) -> Optional[str]: ...

    @abstractmethod
    async def list_users(self) -> List[Dict[str, Any]]: ...

    @abstractmethod
    async def register_user(self, username: str, password_hash: str) -> str: ...

    @abstractmethod
    async def update_password_hash(self, username: str, password_hash: str) -> None: ...

    # Governance

    @abstractmethod
    async def get_permissions(self, resource: str) -> Optional[Dict[str, Any]]: ...

    @abstractmethod
    async def update_permissions(self, resource: str, record: Dict[str, Any]) -> None: ...


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _document_view(row: Document) -> Dict[str, Any]:
    view = dict(row.body)
    view["_id"] = row.id
    return view


def _file_view(row: StoredFile) -> Dict[str, Any]:
    return {
        "_id": row.id,
        "length": row.length,
        "contentType": row.content_type,
        "uploadDate": _isoformat(row.upload_date),
    }


def _user_view(row: User) -> Dict[str, Any]:
    return {
        "username": row.username,
        "created": _isoformat(row.created_at),
    }


def _strip_identity(document: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in document.items() if key != "_id"}


class SqlDataSource(DataSource):
    """
    DataSource over a SQLAlchemy async session factory.

    Every call runs in its own transaction. Queries are filtered in Python
    after loading the collection, which keeps the query language independent
    of the SQL dialect.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self.session_maker() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as exc:
            raise InternalError("Data source failure") from exc

    # Collections

    async def list_collections(self) -> List[Dict[str, Any]]:
        async with self._transaction() as session:
            rows = (await session.execute(select(Collection).order_by(Collection.name))).scalars()
            collections = [{"name": row.name, **row.attributes} for row in rows]
            prefixes = await session.execute(
                select(StoredFile.prefix).distinct().order_by(StoredFile.prefix)
            )
            collections.extend({"name": prefix + FILES_SUFFIX} for prefix in prefixes.scalars())
        return collections

    async def get_collection(self, name: str) -> Dict[str, Any]:
        async with self._transaction() as session:
            prefix = file_prefix(name)
            if prefix is not None:
                count = await session.scalar(
                    select(func.count()).select_from(StoredFile).where(StoredFile.prefix == prefix)
                )
                if not count:
                    raise NotFound(f"Collection \"{name}\" not found.")
                return {"name": name, "count": count}

            row = await session.get(Collection, name)
            if row is None:
                raise NotFound(f"Collection \"{name}\" not found.")
            count = await session.scalar(
                select(func.count()).select_from(Document).where(Document.collection == name)
            )
            return {"name": row.name, **row.attributes, "count": count}

    async def create_collection(self, spec: Dict[str, Any]) -> str:
        name = spec.get("name")
        if not isinstance(name, str) or not name or "/" in name:
            raise BadRequest("Collection needs a \"name\" without slashes.")
        if file_prefix(name) is not None:
            raise BadRequest("File collections are created by uploading a file.")
        if name in USER_COLLECTIONS:
            raise BadRequest(f"\"{name}\" is reserved for user accounts.")
        attributes = {k: v for k, v in spec.items() if k not in ("name", "_id", "_links")}
        async with self._transaction() as session:
            if await session.get(Collection, name) is not None:
                raise BadRequest(f"Collection \"{name}\" already exists.")
            session.add(Collection(name=name, attributes=attributes))
        return name

    async def update_collection(self, name: str, spec: Dict[str, Any]) -> None:
        attributes = {k: v for k, v in spec.items() if k not in ("name", "_id", "_links")}
        async with self._transaction() as session:
            row = await session.get(Collection, name)
            if row is None:
                raise NotFound(f"Collection \"{name}\" not found.")
            row.attributes = attributes

    async def delete_collection(self, name: str) -> None:
        async with self._transaction() as session:
            prefix = file_prefix(name)
            if prefix is not None:
                result = await session.execute(
                    delete(StoredFile).where(StoredFile.prefix == prefix)
                )
                if not result.rowcount:
                    raise NotFound(f"Collection \"{name}\" not found.")
                return

            row = await session.get(Collection, name)
            if row is None:
                raise NotFound(f"Collection \"{name}\" not found.")
            await session.execute(delete(Document).where(Document.collection == name))
            await session.delete(row)

    # Documents

    async def list_documents(
        self,
        collection: str,
        query: Dict[str, Any],
        options: QueryOptions,
    ) -> List[Dict[str, Any]]:
        async with self._transaction() as session:
            prefix = file_prefix(collection)
            if prefix is not None:
                rows = await session.execute(
                    select(StoredFile)
                    .where(StoredFile.prefix == prefix)
                    .order_by(StoredFile.upload_date, StoredFile.id)
                )
                documents = [_file_view(row) for row in rows.scalars()]
            else:
                rows = await session.execute(
                    select(Document)
                    .where(Document.collection == collection)
                    .order_by(Document.seq)
                )
                documents = [_document_view(row) for row in rows.scalars()]
        return apply_options([doc for doc in documents if matches(doc, query)], options)

    async def _get_document_row(
        self,
        session: AsyncSession,
        collection: str,
        document_id: str,
    ) -> Document:
        row = await session.scalar(
            select(Document).where(
                Document.collection == collection,
                Document.id == document_id,
            )
        )
        if row is None:
            raise NotFound(f"Document \"{collection}/{document_id}\" not found.")
        return row

    async def _get_file_row(self, session: AsyncSession, prefix: str, file_id: str) -> StoredFile:
        row = await session.get(StoredFile, file_id)
        if row is None or row.prefix != prefix:
            raise NotFound(f"File \"{prefix}{FILES_SUFFIX}/{file_id}\" not found.")
        return row

    async def get_document(self, collection: str, document_id: str) -> Dict[str, Any]:
        async with self._transaction() as session:
            prefix = file_prefix(collection)
            if prefix is not None:
                return _file_view(await self._get_file_row(session, prefix, document_id))
            return _document_view(await self._get_document_row(session, collection, document_id))

    async def insert_document(self, collection: str, document: Dict[str, Any]) -> str:
        if file_prefix(collection) is not None:
            raise BadRequest("Files are stored by uploading raw content.")
        if collection in USER_COLLECTIONS:
            raise BadRequest("Users are created through self-registration.")
        async with self._transaction() as session:
            if await session.get(Collection, collection) is None:
                session.add(Collection(name=collection, attributes={}))
                await session.flush()
            row = Document(collection=collection, body=_strip_identity(document))
            session.add(row)
            await session.flush()
            document_id = row.id
        return document_id

    async def update_document(
        self,
        collection: str,
        document_id: str,
        document: Dict[str, Any],
    ) -> None:
        if file_prefix(collection) is not None:
            raise BadRequest("File metadata cannot be replaced.")
        async with self._transaction() as session:
            row = await self._get_document_row(session, collection, document_id)
            row.body = _strip_identity(document)

    async def delete_document(self, collection: str, document_id: str) -> None:
        prefix = file_prefix(collection)
        if prefix is not None:
            await self.delete_file(prefix, document_id)
            return
        async with self._transaction() as session:
            row = await self._get_document_row(session, collection, document_id)
            await session.delete(row)

    async def get_field(self, collection: str, document_id: str, field: str) -> Any:
        document = await self.get_document(collection, document_id)
        if field not in document:
            raise NotFound(f"Field \"{field}\" not found.")
        return document[field]

    # Files

    async def insert_file(self, prefix: str, content_type: str, data: bytes) -> str:
        async with self._transaction() as session:
            row = StoredFile(
                prefix=prefix,
                content_type=content_type or "application/octet-stream",
                length=len(data),
                data=data,
            )
            session.add(row)
            await session.flush()
            file_id = row.id
        return file_id

    async def get_file(self, prefix: str, file_id: str) -> FileBlob:
        async with self._transaction() as session:
            row = await self._get_file_row(session, prefix, file_id)
            return FileBlob(content_type=row.content_type, data=row.data)

    async def delete_file(self, prefix: str, file_id: str) -> None:
        async with self._transaction() as session:
            row = await self._get_file_row(session, prefix, file_id)
            await session.delete(row)

    # Users

    async def get_user(self, username: str) -> Dict[str, Any]:
        async with self._transaction() as session:
            row = await session.get(User, username)
            if row is None:
                raise NotFound(f"User \"{username}\" not found.")
            return _user_view(row)

    async def get_password_hash(self, username: str) -> Optional[str]:
        async with self._transaction() as session:
            row = await session.get(User, username)
            return row.password_hash if row is not None else None

    async def list_users(self) -> List[Dict[str, Any]]:
        async with self._transaction() as session:
            rows = await session.execute(select(User).order_by(User.username))
            return [_user_view(row) for row in rows.scalars()]

    async def register_user(self, username: str, password_hash: str) -> str:
        async with self._transaction() as session:
            if await session.get(User, username) is not None:
                raise BadRequest(f"Username \"{username}\" is already registered.")
            session.add(User(username=username, password_hash=password_hash))
            try:
                await session.flush()
            except IntegrityError as exc:
                # Lost a race with a concurrent registration of the same name
                raise BadRequest(f"Username \"{username}\" is already registered.") from exc
        return username

    async def update_password_hash(self, username: str, password_hash: str) -> None:
        async with self._transaction() as session:
            row = await session.get(User, username)
            if row is None:
                raise NotFound(f"User \"{username}\" not found.")
            row.password_hash = password_hash

    # Governance

    async def get_permissions(self, resource: str) -> Optional[Dict[str, Any]]:
        async with self._transaction() as session:
            row = await session.get(PermissionRecord, resource)
            return dict(row.record) if row is not None else None

    async def update_permissions(self, resource: str, record: Dict[str, Any]) -> None:
        async with self._transaction() as session:
            row = await session.get(PermissionRecord, resource)
            if row is None:
                session.add(PermissionRecord(resource=resource, record=dict(record)))
            else:
                row.record = dict(record)
        logger.debug("Stored permission record", extra={"resource": resource})
