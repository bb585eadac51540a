"""
Centralised configuration via Pydantic Settings.

Reads from .env in dev and from the deployment environment in production.
Every tunable of the news & broadcast pipeline lives here.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # the gateway injects plenty of vars we don't need
    )

    # ── Application ─────────────────────────────────────────
    app_env: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    # ── Database ────────────────────────────────────────────
    database_url: str = "sqlite+aiosqlite:///./dev.db"
    auto_create_tables: bool = True

    @field_validator("database_url", mode="before")
    @classmethod
    def assemble_db_url(cls, v: str) -> str:
        """Managed Postgres hands out postgres:// but SQLAlchemy needs postgresql+asyncpg://."""
        if v.startswith("postgres://"):
            v = v.replace("postgres://", "postgresql+asyncpg://", 1)
        elif v.startswith("postgresql://"):
            v = v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    @property
    def is_sqlite(self) -> bool:
        return "sqlite" in self.database_url

    # ── LLM: Gemini ────────────────────────────────────────
    google_api_key: str = ""

    # Model routing
    model_parser: str = "gemini-2.5-flash"
    model_analyzer: str = "gemini-2.5-pro"

    # ── Security ────────────────────────────────────────────
    jwt_secret: str = "change-me"  # noqa: S105
    jwt_algorithm: str = "HS256"
    access_token_expiry_minutes: int = 60

    # ── Rate limiting (AI-triggering endpoints only) ────────
    rate_limit_enabled: bool = True
    ai_rate_limit: str = "30/minute"

    # ── Listing / dashboard ─────────────────────────────────
    default_page_size: int = 20
    max_page_size: int = 100
    dashboard_recent_limit: int = 5

    # ── Generators ──────────────────────────────────────────
    generation_max_retries: int = Field(
        default=3, description="Attempts to claim a batch number under concurrent generation"
    )

    # ── Notification gateway (SMS / WhatsApp) ───────────────
    notification_gateway_url: str = ""
    notification_api_key: str = ""
    notification_timeout_seconds: float = 15.0


@lru_cache
def get_settings() -> Settings:
    return Settings()
