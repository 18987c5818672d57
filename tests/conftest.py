"""
Pytest fixtures for Bounce tests.

API tests run the real application in-process against a temporary SQLite
file; the lifespan is not run by ASGITransport, so tables are created here.
"""

from typing import AsyncGenerator, Tuple

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from bounce.config import Settings
from bounce.main import create_app

ALICE = ("alice", "AlicePass123")
BOB = ("bob", "BobPass12345")


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing at a throwaway database, with cheap hashing."""
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'bounce.db'}",
        password_hash_rounds=4,
    )


@pytest_asyncio.fixture
async def app(settings: Settings) -> AsyncGenerator[FastAPI, None]:
    application = create_app(settings)
    await application.state.database.create_all()
    yield application
    await application.state.database.dispose()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


async def _register(client: AsyncClient, credentials: Tuple[str, str]) -> Tuple[str, str]:
    username, password = credentials
    response = await client.post(
        "/ming.users",
        json={"username": username, "password": password},
    )
    assert response.status_code == 201, response.text
    return credentials


@pytest_asyncio.fixture
async def alice(client: AsyncClient) -> Tuple[str, str]:
    """A registered user, as an httpx auth tuple."""
    return await _register(client, ALICE)


@pytest_asyncio.fixture
async def bob(client: AsyncClient) -> Tuple[str, str]:
    return await _register(client, BOB)

