"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

from unit_tracker.domain.meals import UnmatchedCategoryPolicy

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    timezone: str = "Asia/Jerusalem"
    cache_gc_time_seconds: float = 300.0
    cache_stale_time_seconds: float | None = None
    unmatched_meal_policy: UnmatchedCategoryPolicy = UnmatchedCategoryPolicy.DROP
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
