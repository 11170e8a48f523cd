"""
Application configuration using Pydantic Settings.
Loads configuration from environment variables with sensible defaults.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from unique_jobs.constants import (
    DEFAULT_EXPIRATION_SECONDS,
    DEFAULT_RETRY_SCAN_PAGE_SIZE,
    DEFAULT_RETRY_SET_KEY,
    DEFAULT_UNIQUE_PREFIX,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Redis
    redis_url: str = "redis://localhost:6379/0"
    redis_max_connections: int = 50
    redis_socket_timeout_seconds: float = 5.0

    # Uniqueness defaults
    unique_prefix: str = DEFAULT_UNIQUE_PREFIX
    default_expiration_seconds: int = DEFAULT_EXPIRATION_SECONDS
    unique_checks_retry_queue: bool = False

    # Retry set
    retry_set_key: str = DEFAULT_RETRY_SET_KEY
    retry_scan_page_size: int = DEFAULT_RETRY_SCAN_PAGE_SIZE

    # Observability
    otel_exporter_otlp_endpoint: str = "http://localhost:4317"
    otel_service_name: str = "unique-jobs"
    metrics_enabled: bool = True
    log_level: str = "INFO"
    log_format: str = "json"  # json or console


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
