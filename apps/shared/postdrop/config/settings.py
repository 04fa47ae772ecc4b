"""Application settings using Pydantic Settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global settings loaded from environment variables / .env file."""

    # Storage
    redis_url: str = "redis://redis:6379/0"
    storage_backend: str = "redis"  # redis | memory

    # Retention
    max_posts: int = 500

    # Ingestion
    max_zip_bytes: int = 10 * 1024 * 1024

    # Pagination
    default_page_size: int = 20
    max_page_size: int = 50

    # Live feed
    live_recent_count: int = 20
    live_keepalive_seconds: float = 15.0
    live_queue_size: int = 100

    # Server
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
