# src/neogm/config.py
"""
NeoGM connection settings.

Values are read from environment variables prefixed with ``NEOGM_`` (and an
optional ``.env`` file), e.g. ``NEOGM_URI``, ``NEOGM_USER``,
``NEOGM_PASSWORD``, ``NEOGM_DATABASE``.
"""

from functools import lru_cache
from typing import Tuple

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class NeoGMSettings(BaseSettings):
    """Connection settings for a GraphEngine."""

    model_config = SettingsConfigDict(
        env_prefix="NEOGM_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    uri: str = Field(default="bolt://localhost:7687", description="Neo4j connection URI")
    user: str = Field(default="neo4j", description="Neo4j username")
    password: str = Field(default="password", description="Neo4j password")
    database: str = Field(default="neo4j", description="Default database for sessions")

    @property
    def auth(self) -> Tuple[str, str]:
        return (self.user, self.password)


@lru_cache
def get_settings() -> NeoGMSettings:
    """Get cached settings instance."""
    return NeoGMSettings()
