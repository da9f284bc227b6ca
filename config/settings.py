"""Configuration management using pydantic-settings."""
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # TMDB configuration
    tmdb_bearer_token: Optional[str] = None
    tmdb_base_url: str = "https://api.themoviedb.org/3"
    upstream_timeout_seconds: float = 15.0

    # Locale used when the caller does not send one
    default_language: str = "es-ES"

    # Persistent store (cache table + rate limit counters)
    database_url: str = "sqlite:///./gateway.db"

    # Cache settings
    cache_enabled: bool = True
    default_cache_ttl_seconds: int = 4 * 60 * 60

    # Bulk lookups
    bulk_max_items: int = 50
    bulk_concurrency: int = 8

    # Background writes (cache population, hit counts, usage records)
    background_workers: int = 4
    background_max_attempts: int = 3

    # Browser clients (CORS)
    cors_allow_origins: List[str] = ["*"]

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
