"""
Satarknity - Configuration Management
Centralized configuration using pydantic-settings.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_env: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Supabase backend (both required for the incident features)
    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None

    # Backend resources
    storage_bucket: str = "incidentmedia"
    incidents_table: str = "satarknity_incidents"
    http_timeout_seconds: float = 30.0

    # Reverse geocoding (Nominatim-compatible)
    geocoding_url: str = "https://nominatim.openstreetmap.org"
    geocoding_api_key: Optional[str] = None
    geocoding_user_agent: str = "Satarknity/0.2"

    # API Settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    session_cookie_name: str = "satarknity_session"

    # Browser workspaces (sign-in state and draft report per cookie)
    workspace_ttl_seconds: int = 3600
    max_workspaces: int = 1000

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def is_backend_configured(self) -> bool:
        """Both backend values must be present for the incident features."""
        return bool(self.supabase_url) and bool(self.supabase_anon_key)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
