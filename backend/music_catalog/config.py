"""
Configuration management for the music catalog backend.
Centralizes all environment variables and provides validation.
"""
from functools import lru_cache
from typing import Optional
from dotenv import load_dotenv
from pydantic_settings import BaseSettings
from pydantic import field_validator

# Load environment variables
load_dotenv()


class Settings(BaseSettings):
    """Application settings with validation."""

    # Supabase (document store and identity provider)
    supabase_url: str
    supabase_key: str

    # Document collections
    genres_collection: str = "genres"
    artists_collection: str = "artists"
    songs_collection: str = "songs"
    users_collection: str = "users"

    # Cloudflare R2 (blob storage)
    r2_access_key: str
    r2_secret_key: str
    r2_endpoint: str
    r2_bucket: str
    storage_public_url: str

    # Application
    app_name: str = "Music Catalog API"
    debug: bool = False
    cors_origins: list[str] = ["http://localhost:3000"]
    log_file: Optional[str] = None

    # Sessions
    session_cookie_name: str = "catalog_session"
    session_cookie_secure: bool = False
    session_ttl_seconds: int = 60 * 60 * 24  # 1 day
    session_ready_timeout: float = 10.0

    # File upload limits
    max_image_size: int = 2 * 1024 * 1024  # 2MB
    max_audio_size: int = 100 * 1024 * 1024  # 100MB
    allowed_audio_formats: list[str] = [".mp3", ".wav", ".flac", ".aac", ".ogg", ".m4a"]
    allowed_image_formats: list[str] = [".jpg", ".jpeg", ".png", ".webp", ".gif"]

    # Telemetry
    redis_url: Optional[str] = None
    analytics_enabled: bool = True
    analytics_endpoint: Optional[str] = None
    analytics_queue: str = "analytics"
    analytics_retry_seconds: float = 30.0

    @field_validator('supabase_url', 'r2_endpoint')
    @classmethod
    def validate_https_url(cls, v, info):
        if not v:
            raise ValueError(f'{info.field_name.upper()} is required')
        if not v.startswith('https://'):
            raise ValueError(f'{info.field_name.upper()} must be a valid HTTPS URL')
        return v

    @field_validator('storage_public_url')
    @classmethod
    def validate_public_url(cls, v):
        if not v.startswith(('http://', 'https://')):
            raise ValueError('STORAGE_PUBLIC_URL must start with http:// or https://')
        return v.rstrip('/')

    @property
    def analytics_active(self) -> bool:
        """Telemetry is only queued when it is enabled and Redis is configured."""
        return self.analytics_enabled and bool(self.redis_url)

    model_config = {
        "env_file": ".env",
        "case_sensitive": False,
        "extra": "ignore"
    }


@lru_cache()
def get_settings() -> Settings:
    """Get application settings."""
    return Settings()
