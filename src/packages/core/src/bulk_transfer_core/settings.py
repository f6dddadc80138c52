"""Runtime settings shared by the worker and the API."""
from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    sqlite_path: str = "/data/bulk_transfer.db"
    upload_dir: str = "/tmp/uploads"
    staging_dir: str = "/tmp/staging"
    export_dir: str = "/data/exports"
    batch_size: int = 1000
    export_page_size: int = 1000
    progress_log_every: int = 10_000
    poll_interval_seconds: float = 5.0
    max_concurrent_jobs: int = 3
    heartbeat_every_polls: int = 12
    download_timeout_seconds: float = 300.0
    max_upload_mb: int = 500

    class Config:
        env_file = ".env"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings."""
    return Settings()
