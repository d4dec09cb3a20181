"""
Safespace Backend: Configuration
All settings loaded from environment variables or .env file.
"""
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Database ---
    # Supabase pooler URL in production (postgresql+asyncpg://...)
    database_url: str = "sqlite+aiosqlite:///./safespace.db"

    # Connection pool limits per process (keep low, replicas share the DB)
    db_pool_size: int = 5
    db_max_overflow: int = 5
    # pgbouncer / Supavisor in transaction mode can't use prepared statements
    db_use_pooler: bool = False

    # --- Supabase (auth + storage) ---
    supabase_url: str = ""
    supabase_service_key: str = ""
    supabase_jwt_secret: str = ""
    supabase_jwt_audience: str = "authenticated"

    # --- Avatars ---
    avatar_bucket: str = "avatars"
    avatar_url_ttl_seconds: int = 600
    avatar_max_bytes: int = 5 * 1024 * 1024

    # --- Request queue ---
    storage_timeout_seconds: float = 10.0
    read_retries: int = 1  # extra attempts for idempotent reads only
    require_verified_specialists: bool = False

    # --- Events ---
    event_queue_size: int = 100
    event_keepalive_seconds: float = 15.0

    # --- Sentry ---
    sentry_dsn: Optional[str] = None

    # --- App ---
    debug: bool = False
    log_level: str = "INFO"
    log_file: Optional[str] = None  # JSON log file, console only when unset
    cors_origins: list[str] = ["*"]

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
