"""
Identity service: authentication and self-registration.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from bounce.kernel.data_source import DataSource
from bounce.kernel.identity.password import PasswordHasher
from bounce.logging_config import get_logger
from bounce.schemas.auth import Credentials, UserCreate

logger = get_logger(__name__)


@dataclass(frozen=True)
class Principal:
    """An authenticated user, as seen by the authorization layer."""

    username: str


class IdentityService:
    """
    Maps credentials to users and registers new ones.

    Password storage belongs to the data source; only hashing and
    verification happen here.
    """

    def __init__(self, data_source: DataSource, hasher: Optional[PasswordHasher] = None):
        self.data_source = data_source
        self.hasher = hasher or PasswordHasher()

    async def authenticate(self, credentials: Optional[Credentials]) -> Optional[Principal]:
        """
        Resolve credentials to a principal.

        Missing credentials, unknown users and wrong passwords all give
        ``None``; only data source failures raise.
        """
        if credentials is None:
            return None

        password_hash = await self.data_source.get_password_hash(credentials.username)
        if password_hash is None:
            return None

        if not self.hasher.verify(credentials.password, password_hash):
            logger.info("Rejected credentials", extra={"username": credentials.username})
            return None

        if self.hasher.needs_rehash(password_hash):
            await self.data_source.update_password_hash(
                credentials.username,
                self.hasher.hash(credentials.password),
            )
            logger.info("Rehashed password", extra={"username": credentials.username})

        return Principal(username=credentials.username)

    async def register_user(self, data: UserCreate) -> str:
        """
        Register a new user.

        Raises:
            BadRequest: If the username is taken
        """
        username = await self.data_source.register_user(
            data.username,
            self.hasher.hash(data.password),
        )
        logger.info("Registered user", extra={"username": username})
        return username

    async def get_user(self, username: str) -> Dict[str, Any]:
        return await self.data_source.get_user(username)

    async def list_users(self) -> List[Dict[str, Any]]:
        return await self.data_source.list_users()
