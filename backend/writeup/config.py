"""
WriteUp Backend: Application Configuration
==========================================

What:  Centralized configuration management using Pydantic Settings.
Why:   Type-safe environment variable loading with validation on startup.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by every module that needs configuration values.
When:  Loaded once at module import time.

Note on provider credentials:
    API keys are NOT settings. They live in the provider configuration store
    (see services/config_store.py) so the settings panel can change them at
    runtime without a restart. Settings only hold process-wide knobs.
"""

from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have defaults suitable for a local desktop install, where the
    backend listens on loopback and stores its data in a SQLite file.
    """

    # ── Database ──────────────────────────────────────────────────────────
    # Holds provider descriptors and enhancement history.
    # Format: sqlite+aiosqlite:///path/to/file.db
    database_url: str = Field(
        default="sqlite+aiosqlite:///./writeup.db",
        description="Async SQLAlchemy connection URL",
    )

    # ── Provider Orchestration ────────────────────────────────────────────
    # Upper bound for a single adapter attempt inside the fallback loop.
    # A slow provider costs at most this long before the next one is tried.
    provider_timeout_seconds: float = Field(default=60.0, gt=0, le=600)

    # Used by the "Test" button only, never inside the fallback loop.
    test_connection_timeout_seconds: float = Field(default=10.0, gt=0, le=120)

    # Hard cap on variants requested from backends that return several choices.
    max_variants: int = Field(default=3, ge=1, le=10)

    # ── Request Boundary ──────────────────────────────────────────────────
    max_text_length: int = Field(default=10_000, ge=1, le=200_000)

    # ── Chat ──────────────────────────────────────────────────────────────
    # Only the most recent messages are sent, and only as many as fit the
    # character budget (newest first).
    chat_history_limit: int = Field(default=6, ge=0, le=100)
    chat_context_char_budget: int = Field(default=8_000, ge=100, le=500_000)

    # ── History ───────────────────────────────────────────────────────────
    enable_history: bool = Field(default=True)
    history_limit: int = Field(default=100, ge=1, le=10_000)

    # ── Backend Endpoints ─────────────────────────────────────────────────
    ollama_base_url: str = Field(default="http://localhost:11434")
    openrouter_base_url: str = Field(default="https://openrouter.ai/api/v1")
    openrouter_referer: str = Field(default="https://text-enhancer.app")
    openrouter_title: str = Field(default="Text Enhancement App")

    # ── Privacy ───────────────────────────────────────────────────────────
    # Comma-separated application names whose selections are never sent out.
    excluded_apps: str = Field(default="1Password,LastPass,Bitwarden,KeePass")

    @property
    def excluded_apps_list(self) -> List[str]:
        """Splits the comma-separated excluded apps into a list."""
        return [a.strip() for a in self.excluded_apps.split(",") if a.strip()]

    # ── CORS ──────────────────────────────────────────────────────────────
    # The desktop shell loads its UI from a local dev server or file origin.
    cors_origins: str = Field(default="http://localhost:5173,app://.")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    # ── Server ────────────────────────────────────────────────────────────
    # Loopback only: this service holds third-party API keys.
    backend_host: str = Field(default="127.0.0.1")
    backend_port: int = Field(default=8765, ge=1024, le=65535)

    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


# Singleton instance, imported throughout the application
settings = Settings()
