"""
Configuration management for doc_relay.

This module provides environment-based configuration using Pydantic BaseSettings,
allowing the same code to run against development, testing, and production
PostgreSQL sinks while keeping credentials out of the source tree.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Determine project root for resolving .env by default
PROJECT_ROOT = Path(__file__).resolve().parents[3]
DEFAULT_ENV_FILE = PROJECT_ROOT / ".env"
ENV_FILE_OVERRIDE = os.getenv("DRL_ENV_FILE")
if ENV_FILE_OVERRIDE:
    env_file_candidate = Path(ENV_FILE_OVERRIDE).expanduser()
    if not env_file_candidate.is_absolute():
        env_file_candidate = PROJECT_ROOT / env_file_candidate
    SETTINGS_ENV_FILE = env_file_candidate
else:
    SETTINGS_ENV_FILE = DEFAULT_ENV_FILE


class DatabaseSettings:
    """
    Database settings compatibility layer for unified DSN retrieval.

    Supports both component-based and URI-based connection string generation.
    """

    def __init__(
        self,
        host: str,
        port: int = 5432,
        user: str = "",
        password: str = "",
        db: str = "",
        uri: Optional[str] = None,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.db = db
        self.uri = uri

    def get_connection_string(self) -> str:
        """
        Get PostgreSQL connection string.

        Returns:
            Database connection string (DSN)
        """
        if self.uri:
            return self.uri
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.db}"


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    Environment variables are loaded with the DRL_ prefix. For example,
    DRL_SCHEMA_FILE overrides the schema_file setting.

    Uppercase fields (no prefix):
    - LOG_LEVEL: Logging level (uppercase)
    - DB_POOL_SIZE: Maximum pooled connections to the sink
    - DB_CONNECT_TIMEOUT: Connection timeout in seconds
    """

    LOG_LEVEL: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Logging level (uppercase)",
    )
    DB_POOL_SIZE: int = Field(
        default=4,
        validation_alias="DB_POOL_SIZE",
        description="Database connection pool size",
    )
    DB_CONNECT_TIMEOUT: int = Field(
        default=5,
        validation_alias="DB_CONNECT_TIMEOUT",
        description="Connection timeout in seconds",
    )

    schema_file: str = Field(
        default="./config/collections.yml",
        description="Path to the collection-to-table map (YAML or JSON)",
    )
    clobber_tables: bool = Field(
        default=False,
        description="Drop and recreate mapped tables when generating DDL",
    )

    # Database configuration - nested settings with DRL_DATABASE__ prefix
    database_host: str = Field(default="localhost", description="Database host")
    database_port: int = Field(default=5432, description="Database port")
    database_user: str = Field(default="user", description="Database user")
    database_password: str = Field(default="password", description="Database password")
    database_db: str = Field(default="database", description="Database name")
    database_uri: Optional[str] = Field(
        default=None,
        description="Complete database URI",
        validation_alias=AliasChoices(
            "DRL_DATABASE__URI", "DRL_DATABASE_URI", "DATABASE_URL"
        ),
    )

    def get_database_connection_string(self) -> str:
        """Get PostgreSQL connection string.

        Priority order:
        1) DRL_DATABASE__URI / DRL_DATABASE_URI / DATABASE_URL
        2) Construct from individual DRL_DATABASE_* components

        'postgres://' is rewritten to 'postgresql://' for libpq/SQLAlchemy
        compatibility.
        """
        final_uri = self.database_uri or self.database.get_connection_string()

        if final_uri.startswith("postgres://"):
            final_uri = final_uri.replace("postgres://", "postgresql://", 1)

        return final_uri

    @property
    def database(self) -> DatabaseSettings:
        """Database settings assembled from individual configuration fields."""
        return DatabaseSettings(
            host=self.database_host,
            port=self.database_port,
            user=self.database_user,
            password=self.database_password,
            db=self.database_db,
            uri=self.database_uri,
        )

    model_config = SettingsConfigDict(
        env_prefix="DRL_",
        env_file=str(SETTINGS_ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance with loaded configuration
    """
    return Settings()
