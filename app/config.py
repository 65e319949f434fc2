"""
Centralized configuration management using pydantic-settings.
This module provides a single source of truth for all application configuration.
"""

from dotenv import load_dotenv
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.utils.logger import setup_logger

load_dotenv(override=True)


logger = setup_logger("core_config")

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./task_store.db"


class Settings(BaseSettings):
    """
    Application settings managed by pydantic-settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        env_prefix="",
        populate_by_name=True,
    )

    # ===== Database Configuration =====
    database_url: str = Field(
        default=DEFAULT_DATABASE_URL,
        alias="TASK_STORE_DATABASE_URL",
        description="Application database URL (async driver is selected automatically)",
    )

    database_url_for_alembic: str | None = Field(
        default=None,
        alias="TASK_STORE_DATABASE_URL_FOR_ALEMBIC",
        description="Database URL used for migrations, defaults to TASK_STORE_DATABASE_URL",
    )

    database_echo: bool = Field(
        default=False,
        alias="DATABASE_ECHO",
        description="Log every SQL statement emitted by the engine",
    )

    # ===== Connection Pool Configuration =====
    # Ignored for SQLite, which does not use a sized pool
    db_pool_size: int = Field(
        default=10,
        alias="DB_POOL_SIZE",
        description="Number of persistent connections kept in the pool",
    )

    db_max_overflow: int = Field(
        default=20,
        alias="DB_MAX_OVERFLOW",
        description="Connections allowed beyond the pool size under load",
    )

    db_pool_timeout: int = Field(
        default=30,
        alias="DB_POOL_TIMEOUT",
        description="Seconds to wait for a pooled connection",
    )

    db_pool_recycle: int = Field(
        default=300,
        alias="DB_POOL_RECYCLE",
        description="Seconds after which pooled connections are recycled",
    )

    db_unavailable_hint: str = Field(
        default="Database connection failed. The server may be offline or network connectivity is down.",
        alias="DB_UNAVAILABLE_HINT",
        description="User-facing hint for database connection errors",
    )

    @model_validator(mode="after")
    def validate_settings(self) -> "Settings":
        """Log warnings for missing critical configuration."""
        if self.database_url == DEFAULT_DATABASE_URL:
            logger.warning(
                "TASK_STORE_DATABASE_URL environment variable not set, "
                f"using local SQLite database {DEFAULT_DATABASE_URL}."
            )
        return self

    @property
    def migration_database_url(self) -> str:
        return self.database_url_for_alembic or self.database_url


# Global settings instance
settings = Settings()
