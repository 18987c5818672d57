"""
Application configuration using pydantic-settings.
Loads from environment variables with .env file support.
"""

from functools import lru_cache
from typing import Dict, List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_database_permissions() -> Dict[str, List[str]]:
    return {
        "read": ["@users"],
        "write": ["@users"],
        "delete": ["@users"],
        "govern": ["@users"],
    }


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./bounce.db"

    # Governance
    # Applied to every resource without a permission record of its own.
    # Set as JSON, e.g. DATABASE_PERMISSIONS='{"read": ["*"]}'
    database_permissions: Dict[str, List[str]] = Field(
        default_factory=_default_database_permissions,
    )
    max_inheritance_depth: int = Field(default=1, ge=0)

    # Security
    auth_realm: str = "Bounce"
    password_hash_rounds: int = Field(default=12, ge=4, le=31)

    # CORS
    cors_origins: List[str] = ["*"]

    # Server
    host: str = "0.0.0.0"
    port: int = 27080

    # Application
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR
    project_name: str = "Bounce"
    version: str = "0.1.0"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
