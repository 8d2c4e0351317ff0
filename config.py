"""
Configuration settings for concurso-cli.

Uses Pydantic Settings for environment variable management with .env file support.
Every field can be overridden with a CONCURSO_* environment variable.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CONCURSO_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Persistence
    # ========================================
    backend: Literal["local", "sql", "rest"] = Field(
        default="local",
        description="Persistence backend selected at startup",
    )
    data_dir: Path = Field(
        default=Path.home() / ".concurso",
        description="Directory for the local store, profiles and session file",
    )
    database_url: str | None = Field(
        default=None,
        description="SQLAlchemy URL for the sql backend (defaults to SQLite in data_dir)",
    )

    # ─── Remote service (rest backend) ──────────────────────────────────────────
    rest_url: str = Field(
        default="http://127.0.0.1:54321",
        description="Base URL of the PostgREST-compatible service",
    )
    rest_api_key: str | None = Field(
        default=None,
        description="Project API key sent as the apikey header",
    )
    request_timeout_seconds: float | None = Field(
        default=None,
        description="HTTP timeout for persistence calls (None waits indefinitely)",
    )

    # ========================================
    # Study Timer
    # ========================================
    default_timer_minutes: int = Field(
        default=25,
        description="Duration loaded when a timer starts from zero",
    )
    timer_presets: list[int] = Field(
        default_factory=lambda: [15, 25, 45],
        description="Quick duration presets offered by the timer view",
    )
    max_timer_minutes: int = Field(
        default=180,
        description="Upper bound for a custom timer duration",
    )
    notifications_enabled: bool = Field(
        default=True,
        description="Allow desktop notifications when a session ends",
    )

    # ========================================
    # Export
    # ========================================
    export_dir: Path = Field(
        default=Path("exports"),
        description="Default directory for generated PDF files",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    @field_validator("default_timer_minutes")
    @classmethod
    def _positive_minutes(cls, value: int) -> int:
        if value < 1:
            raise ValueError("default_timer_minutes must be at least 1")
        return value

    # ========================================
    # Helper Methods
    # ========================================
    def get_database_url(self) -> str:
        """Return the configured database URL, or the SQLite file under data_dir."""
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.data_dir / 'concurso.db'}"

    @property
    def store_path(self) -> Path:
        """Key-value file used by the local backend."""
        return self.data_dir / "store.json"

    @property
    def users_path(self) -> Path:
        return self.data_dir / "users.json"

    @property
    def session_path(self) -> Path:
        """Saved sign-in, one per backend (tokens and user ids differ between them)."""
        return self.data_dir / f"session-{self.backend}.json"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
