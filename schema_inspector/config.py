"""Configuration management for schema-inspector."""

import os
from pathlib import Path
from pydantic_settings import BaseSettings
from pydantic import Field
from typing import List, Optional


def _find_env_file() -> Optional[str]:
    """Find .env file in multiple locations.

    Search order:
    1. Current working directory
    2. ~/.schema-inspector/.env
    """
    if os.path.exists(".env"):
        return ".env"

    user_env = Path.home() / ".schema-inspector" / ".env"
    if user_env.exists():
        return str(user_env)

    return None


class Settings(BaseSettings):
    """Settings loaded from ``SCHEMA_INSPECTOR_*`` environment variables.

    Only the CLI reads these; library callers pass the same values to
    ``create_inspector`` themselves.
    """

    database_url: Optional[str] = Field(
        default=None,
        description="SQLAlchemy database URL used by the CLI"
    )
    client: Optional[str] = Field(
        default=None,
        description="Engine identifier; derived from the URL's dialect when unset"
    )

    # Engine defaults
    postgres_search_path: List[str] = Field(
        default=["public"],
        description="Schemas searched by the Postgres and CockroachDB inspectors, in order"
    )
    mssql_default_schema: str = Field(
        default="dbo",
        description="Schema used by the SQL Server inspector when none is given"
    )

    log_level: str = Field(
        default="WARNING",
        description="Logging level for the CLI"
    )

    class Config:
        env_prefix = "SCHEMA_INSPECTOR_"
        env_file = _find_env_file()
        env_file_encoding = "utf-8"


# Global settings instance
settings = Settings()
