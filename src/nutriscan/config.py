"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    admin_token: str
    openai_api_key: str
    openai_model: str = "gpt-5.2"
    openai_reasoning_effort: str = "medium"
    openai_store: bool = False
    storage_bucket: str = "food-images"
    daily_scan_allowance: int = 5
    reference_timezone: str = "UTC"
    strict_scan_quota: bool = False
    analysis_timeout_seconds: float = 60.0
    storage_timeout_seconds: float = 20.0
    database_timeout_seconds: int = 10
    news_feed_url: str = "https://zetizen.jawapos.com/api/news"
    news_ttl_seconds: int = 900
    tag_cache_ttl_seconds: int = 600
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
