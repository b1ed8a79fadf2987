"""
Centralized configuration for the storefront client.

All settings are loaded from environment variables with sensible defaults.
Settings are namespaced by concern (API_*, TOKEN_*, ...).
"""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Storefront Client"
    debug: bool = False

    # Backend API
    api_base_url: str = "https://api.example.com"
    request_timeout: float = 30.0  # seconds

    # Local storage (empty path keeps durable state in memory only)
    storage_path: str = ""

    # Navigation entry points
    login_path: str = "/login.html"

    # Token refresh schedule
    token_refresh_interval_seconds: float = 300.0
    token_refresh_threshold_seconds: float = 600.0

    # Profile uploads
    max_avatar_bytes: int = 5 * 1024 * 1024


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
