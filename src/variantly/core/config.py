"""
Configuration management for Variantly.

Supports environment variables and .env files.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PERSIST_KEY = "dcl_experiments"


class StorageSettings(BaseSettings):
    """Settings for the persistent assignment store."""

    model_config = SettingsConfigDict(
        env_prefix="VARIANTLY_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # File backing the local storage, shared by every process of the same user
    path: Path = Field(default_factory=lambda: Path.home() / ".variantly" / "storage.json")
    persist_key: str = PERSIST_KEY

    @field_validator("persist_key")
    @classmethod
    def validate_persist_key(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("persist_key must not be empty")
        return v


class LoggingSettings(BaseSettings):
    """Logging output settings."""

    model_config = SettingsConfigDict(
        env_prefix="VARIANTLY_LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    level: str = "INFO"
    format: str = "console"

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        v = v.lower()
        if v not in {"console", "json"}:
            raise ValueError(f"Invalid log format: {v}. Must be 'console' or 'json'")
        return v


class Settings(BaseSettings):
    """Combined application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    # Environment
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment.lower() == "production"


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()


def reload_settings() -> Settings:
    """Reload settings (clears cache)."""
    get_settings.cache_clear()
    return get_settings()
