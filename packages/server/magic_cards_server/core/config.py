"""
Application configuration loaded from environment variables.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Funnel server configuration."""

    model_config = SettingsConfigDict(env_prefix="MAGIC_CARDS_", env_file=".env", extra="ignore")

    # Record store (Airtable-compatible REST API)
    record_store_url: str = "https://api.airtable.com/v0"
    record_store_api_key: str = ""
    record_store_base_id: str = ""
    projects_table: str = "Projects"
    contacts_table: str = "Contacts"
    request_timeout_seconds: int = 30

    # Asset host (Cloudinary-compatible unsigned uploads)
    upload_url: str = "https://api.cloudinary.com/v1_1"
    upload_cloud_name: str = ""
    upload_preset: str = "Magic Cards"
    upload_timeout_seconds: int = 120
    max_upload_bytes: int = 5 * 1024 * 1024

    # Funnel behaviour
    contact_creators: list[str] = []
    scroll_delay_seconds: float = 0.3
    saved_badge_seconds: float = 2.0

    # Logging
    log_level: str = "info"
    log_format: Literal["json", "text"] = "json"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    # CORS
    cors_origins: list[str] = ["http://localhost:5173"]

    @property
    def record_store_configured(self) -> bool:
        return bool(self.record_store_api_key and self.record_store_base_id)

    @property
    def uploads_configured(self) -> bool:
        return bool(self.upload_cloud_name)


@lru_cache
def get_settings() -> Settings:
    return Settings()
