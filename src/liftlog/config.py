"""Application configuration loaded from environment variables."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process configuration (``LIFTLOG_*`` environment variables or .env).

    Per-install state such as the access token, device ID and remote
    document ID is persisted in the local database instead.
    """

    # --- Storage ---
    data_dir: Path = Path.home() / ".liftlog"
    db_filename: str = "liftlog.db"

    # --- Remote document store ---
    api_base_url: str = "https://api.github.com"
    document_description: str = "Gym Tracker Data"
    document_filename: str = "gym-tracker-data.json"
    request_timeout_seconds: float = 30.0
    listing_page_size: int = 100
    listing_max_pages: int = 10

    # --- Outbox / scheduling ---
    max_retries: int = 3
    sync_interval_seconds: float = 30.0
    max_backoff_seconds: float = 600.0

    # --- Connectivity probe ---
    connectivity_host: str = "api.github.com"
    connectivity_port: int = 443
    connectivity_timeout_seconds: float = 3.0

    # --- Logging ---
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="LIFTLOG_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_filename


@lru_cache
def get_settings() -> Settings:
    return Settings()
