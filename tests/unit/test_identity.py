"""
Unit tests for IdentityService authentication.
"""

from unittest.mock import AsyncMock

import pytest

from bounce.kernel.data_source import DataSource
from bounce.kernel.identity import IdentityService, PasswordHasher, Principal
from bounce.schemas.auth import Credentials

PASSWORD = "AlicePass123"


def make_service(stored_rounds: int, rounds: int) -> IdentityService:
    source = AsyncMock(spec=DataSource)
    source.get_password_hash.return_value = PasswordHasher(rounds=stored_rounds).hash(PASSWORD)
    return IdentityService(source, PasswordHasher(rounds=rounds))


class TestAuthenticate:
    """Tests for IdentityService.authenticate."""

    @pytest.mark.asyncio
    async def test_no_credentials(self):
        service = make_service(4, 4)

        assert await service.authenticate(None) is None
        service.data_source.get_password_hash.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_user(self):
        service = make_service(4, 4)
        service.data_source.get_password_hash.return_value = None

        assert await service.authenticate(Credentials(username="ghost", password=PASSWORD)) is None

    @pytest.mark.asyncio
    async def test_valid_credentials_keep_current_hash(self):
        service = make_service(4, 4)

        principal = await service.authenticate(Credentials(username="alice", password=PASSWORD))

        assert principal == Principal(username="alice")
        service.data_source.update_password_hash.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cost_change_rehashes_on_login(self):
        service = make_service(4, 5)

        principal = await service.authenticate(Credentials(username="alice", password=PASSWORD))

        assert principal == Principal(username="alice")
        service.data_source.update_password_hash.assert_awaited_once()
        username, new_hash = service.data_source.update_password_hash.await_args.args
        assert username == "alice"
        assert new_hash.startswith("$2b$05$")
        assert service.hasher.verify(PASSWORD, new_hash) is True

    @pytest.mark.asyncio
    async def test_wrong_password_never_rehashes(self):
        service = make_service(4, 5)

        assert await service.authenticate(Credentials(username="alice", password="nope")) is None
        service.data_source.update_password_hash.assert_not_awaited()
