from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Loading priority (highest to lowest):
    1. Environment variables
    2. .env file
    3. Default values below

    Only the HTTP boundary, the queue factory and the worker entry point read
    these values. Services get what they need through their constructors.
    """

    # Environment
    environment: str = "development"
    debug: bool = True

    # Application
    app_name: str = "Platform Link Shortener"
    app_version: str = "1.0.0"

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    # Database
    database_url: str = "sqlite:///./shortlink.db"
    db_timeout_seconds: float = 5.0  # Busy timeout (SQLite) / statement timeout (PostgreSQL)

    # Short codes
    base_url: str = "http://127.0.0.1:8000"
    short_code_length: int = 6
    short_code_retry_budget: int = 20  # Warn after this many taken codes in a row

    # Admin API (HTTP Basic)
    admin_username: str = "admin"
    admin_password: str = "change-me"

    # Click dispatch queue
    queue_backend: str = "memory"  # Options: "redis_streams", "memory"
    redis_url: str = "redis://localhost:6379/0"
    queue_name: str = "click_events"
    queue_consumer_group: str = "click_workers"
    queue_consumer_name: Optional[str] = None  # Defaults to worker-<hostname>; keep stable across restarts
    queue_publish_timeout: float = 0.25  # Seconds a Redis publish may take before the click is dropped
    queue_batch_size: int = 100
    queue_max_size: int = 10000  # In-memory queue bound, newer clicks are dropped past it
    queue_worker_interval: float = 1.0  # Seconds between polls when the queue is empty

    # Click worker
    click_worker_embedded: bool = True  # Run the worker inside the API process
    click_record_retries: int = 0  # Extra attempts per click before it is dropped

    # Analytics
    analytics_timezone: str = "UTC"
    week_start_day: int = 6  # Python weekday numbering, 0 = Monday, 6 = Sunday
    recent_clicks_limit: int = 10

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Create settings instance
settings = Settings()
