"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

from workout_tracker.services.workouts import DEFAULT_APP_ID

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_anon_key: str
    app_id: str = DEFAULT_APP_ID
    documents_table: str = "documents"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
