"""
Configuration management for the Mood Journal service.

Settings are read from environment variables prefixed with ``MOOD_JOURNAL_``
and from an optional ``.env`` file.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="MOOD_JOURNAL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    # Storage
    database_path: str = "data/mood_journal.db"
    upload_dir: str = "public/uploads"
    max_upload_bytes: int = 10 * 1024 * 1024

    # Logging
    log_level: str = "INFO"
    log_file: str = ""

    app_name: str = "Mood Journal"
    app_version: str = "0.1.0"


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
