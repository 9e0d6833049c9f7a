"""
PLAYHUB API Configuration

Environment-based settings for the FastAPI backend.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "PLAYHUB API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    API_PREFIX: str = "/api"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./db/playhub.sqlite3"
    DATABASE_ECHO: bool = False

    # Sessions (absolute expiry, not sliding)
    SESSION_TTL_HOURS: int = 24
    SESSION_COOKIE_NAME: str = "playhub_session"
    SESSION_COOKIE_SECURE: bool = False

    # Password hashing
    BCRYPT_ROUNDS: int = 12

    # Seed accounts created on first start
    ADMIN_PASSWORD: str = "Admin123"
    USER_PASSWORD: str = "User123"

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:4200", "http://localhost:3000"]

    # Audit log
    AUDIT_PAGE_SIZE: int = 50
    AUDIT_MAX_PAGE_SIZE: int = 100
    AUDIT_EXPORT_LIMIT: int = 500

    # Content limits for anonymous / unregistered principals
    UNREGISTERED_SONG_LIMIT: int = 10

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
