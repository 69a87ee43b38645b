from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Loading priority (highest to lowest):
    1. Environment variables
    2. .env file
    3. Default values below
    """

    # Environment
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Application
    app_name: str = "URL Shortener"
    app_version: str = "1.0.0"

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    # Database (any async SQLAlchemy URL)
    database_url: str = "sqlite+aiosqlite:///./url_shortener.db"
    database_echo: bool = False

    # URL Shortener specific
    base_url: str = "http://127.0.0.1:8000"
    short_code_length: int = Field(default=8, ge=6, le=12)
    max_retries: int = 5  # Attempts on short code collision

    # Cache settings
    cache_backend: str = "redis"  # Options: "redis", "memory", "null"
    redis_url: str = "redis://localhost:6379/0"
    cache_timeout: float = 0.5  # Seconds before a cache call counts as failed
    url_cache_ttl: int = 3600  # short:<code> and original:<url>
    analytics_cache_ttl: int = 60
    recent_urls_limit: int = 10

    # Click queue settings
    queue_backend: str = "memory"  # Options: "redis_streams", "memory"
    queue_name: str = "url_clicks"
    queue_consumer_group: str = "click_workers"
    queue_batch_size: int = 100
    queue_block_ms: int = 1000
    queue_max_len: int = 100_000  # Approximate cap on the Redis stream
    queue_claim_idle_ms: int = 60_000  # Reclaim clicks left pending by a dead worker
    queue_publish_timeout: float = 0.5  # Seconds a redirect waits to queue its click
    click_worker_enabled: bool = True  # Run the worker inside the API process
    click_worker_shutdown_grace: float = 5.0  # Seconds to finish the batch in flight

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Create settings instance
settings = Settings()
