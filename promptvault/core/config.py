"""Configuration management using Pydantic Settings.

This module provides typed configuration loaded from environment variables.
All settings are validated at startup to fail fast if misconfigured.
"""

import os
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def default_data_dir() -> Path:
    """Per-user data directory (``$XDG_DATA_HOME/promptvault``)."""
    base = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))
    return base / "promptvault"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings are loaded from .env file or environment variables.
    Remote backend credentials are resolved separately, see
    ``promptvault.core.remote_config``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage backend
    backend: Literal["sqlite", "remote"] = Field(
        default="sqlite", description="Record store backend"
    )
    data_dir: Path = Field(
        default_factory=default_data_dir, description="Directory for the database and config files"
    )
    database_filename: str = Field(default="prompts.db", description="SQLite database file name")
    database_echo: bool = Field(default=False, description="Echo SQL statements")

    # Search
    search_mode: Literal["fulltext", "contains"] = Field(
        default="fulltext", description="Default prompt search mode"
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    log_format: Literal["json", "text"] = Field(
        default="text", description="Log output format"
    )

    # Environment
    environment: Literal["development", "production", "test"] = Field(
        default="development", description="Application environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    @field_validator("data_dir", mode="after")
    @classmethod
    def ensure_path_is_absolute(cls, v: Path) -> Path:
        """Ensure paths are absolute."""
        v = v.expanduser()
        if not v.is_absolute():
            return v.absolute()
        return v

    @property
    def database_path(self) -> Path:
        """Full path of the embedded SQLite database."""
        return self.data_dir / self.database_filename

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    @property
    def is_test(self) -> bool:
        """Check if running in test mode."""
        return self.environment == "test"


settings = Settings()
