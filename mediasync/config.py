"""
Runtime configuration helpers for the sync engine and its gateway.

Loads DATABASE_URL and the engine tunables from the .env file located in the
project root.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root
BASE_DIR = Path(__file__).resolve().parents[1]

# Absolute path to .env
ENV_PATH = BASE_DIR / ".env"

# Load .env defaults without overriding environment variables provided by the platform
load_dotenv(dotenv_path=ENV_PATH, override=False)


class Settings(BaseSettings):
    # Required field, must come from .env
    database_url: str = Field(..., alias="DATABASE_URL")

    app_name: str = Field(default="MediaConnect Sync", alias="APP_NAME")
    api_version: str = Field(default="0.1.0", alias="API_VERSION")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    cors_origins: str | None = Field(default=None, alias="CORS_ORIGINS")

    # Directory search
    search_debounce_ms: int = Field(default=300, alias="SEARCH_DEBOUNCE_MS")
    search_result_limit: int = Field(default=20, alias="SEARCH_RESULT_LIMIT")

    # Feed trends
    trend_limit: int = Field(default=5, alias="TREND_LIMIT")
    fallback_trend_tag: str = Field(default="#General", alias="FALLBACK_TREND_TAG")
    default_post_tag: str = Field(default="General", alias="DEFAULT_POST_TAG")

    # Conversations
    chat_started_text: str = Field(default="Chat started", alias="CHAT_STARTED_TEXT")
    placeholder_display_name: str = Field(default="User", alias="PLACEHOLDER_DISPLAY_NAME")

    # Subscriptions reload on this interval as well as on change notifications when set
    snapshot_poll_seconds: float | None = Field(default=None, alias="SNAPSHOT_POLL_SECONDS")

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def search_debounce_seconds(self) -> float:
        return self.search_debounce_ms / 1000


@lru_cache()
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
