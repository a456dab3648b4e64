"""
Application Configuration.

Pydantic settings for type-safe environment configuration.
Covers history depth, import limits and the AI extraction backend.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from network_engine.knowledge.history import DEFAULT_HISTORY_LIMIT
from network_engine.knowledge.schemas import ImportMode


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === History ===
    history_limit: int = Field(
        default=DEFAULT_HISTORY_LIMIT,
        ge=1,
        description="Maximum number of history snapshots kept",
    )
    track_modifications: bool = Field(
        default=False,
        description="Record count-neutral edits as 'Modified' history entries",
    )

    # === Import ===
    default_import_mode: ImportMode = Field(
        default=ImportMode.MERGE,
        description="Import mode used when a request does not specify one",
    )
    max_import_bytes: int = Field(
        default=10 * 1024 * 1024,
        ge=1,
        description="Largest accepted import file in bytes",
    )

    # === AI Extraction Backend ===
    ai_backend_url: str = Field(
        default="http://localhost:3001/api",
        description="Base URL of the extraction/discovery backend",
    )
    ai_backend_token: str = Field(
        default="",
        description="Bearer token for the backend (empty disables the header)",
    )
    ai_model: str = Field(
        default="gpt-5",
        description="Model requested from the backend",
    )
    ai_request_timeout: float = Field(
        default=120.0,
        description="Request timeout for the backend in seconds",
    )
    ai_max_retries: int = Field(
        default=3,
        ge=1,
        description="Attempts per backend request, including the first",
    )

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # === API Configuration ===
    api_host: str = Field(
        default="0.0.0.0",
        description="API host to bind to",
    )
    api_port: int = Field(
        default=8000,
        description="API port to bind to",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
