"""Centralized configuration using pydantic-settings."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONFLICT_TITLE = "Update Conflict"
DEFAULT_CONFLICT_MESSAGE = (
    "This record was modified by another user. Please refresh to see the latest changes."
)


class Settings(BaseSettings):
    """Application settings from environment variables.

    All fields are optional with sensible defaults.
    Validation occurs on first get_settings() call.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    supabase_url: str | None = None
    supabase_key: str | None = None

    # Optimistic update defaults
    version_column: str = "version"
    default_select: str = "*"
    show_conflict_notification: bool = True
    conflict_title: str = DEFAULT_CONFLICT_TITLE
    conflict_message: str = DEFAULT_CONFLICT_MESSAGE

    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {', '.join(sorted(valid_levels))}")
        return upper

    @field_validator("version_column")
    @classmethod
    def validate_version_column(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("version_column must not be empty")
        return stripped

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to dictionary."""
        return {
            "supabase_url": self.supabase_url,
            "supabase_key": self.supabase_key,
            "version_column": self.version_column,
            "default_select": self.default_select,
            "show_conflict_notification": self.show_conflict_notification,
            "conflict_title": self.conflict_title,
            "conflict_message": self.conflict_message,
            "log_level": self.log_level,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached Settings singleton.

    Use this function for dependency injection and testing overrides.
    The cache ensures only one Settings instance exists per process.

    For testing: override with get_settings.cache_clear() then set env vars.
    """
    return Settings()
