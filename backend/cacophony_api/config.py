"""
Cacophony API - Application Configuration
"""
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Cacophony API"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    # SQLite for development, PostgreSQL (postgresql+asyncpg://...) for production
    database_url: str = "sqlite+aiosqlite:///./storage/cacophony.db"

    # Tokens
    jwt_secret_key: str = "cacophony-api-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 480
    # Devices keep their token for their whole deployment unless set
    device_token_expire_minutes: Optional[int] = None

    # Recordings further than this from every station are left unassigned
    station_match_radius_meters: float = 30.0

    # Bootstrap account, only created on an empty user table
    default_admin_username: str = "admin"
    default_admin_password: Optional[str] = None

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
