"""
Application settings.

Values come from the environment (or a local .env file). A single Settings
object is created at startup, attached to ``app.state.settings`` and handed
to the services that need it through the ``get_settings`` dependency.
"""
from typing import List, Optional

from fastapi import Request
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    AUTO_CREATE_TABLES: bool = True

    # Database
    DATABASE_URL: str = "sqlite:///./moviemonday.db"
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 3600
    DB_ECHO: bool = False

    # Tokens
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    INVITE_TOKEN_EXPIRE_DAYS: int = 7
    GROUP_INVITE_EXPIRE_DAYS: int = 7
    VERIFICATION_TOKEN_TTL_HOURS: int = 24
    RESET_TOKEN_TTL_MINUTES: int = 60
    COOKIE_SECURE: bool = False

    # Frontend / CORS
    FRONTEND_URL: str = "http://localhost:3000"
    TRUSTED_HOSTS: List[str] = []
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Email
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    EMAIL_FROM: Optional[str] = None
    SMTP_USE_TLS: bool = True

    # TMDB
    TMDB_API_KEY: Optional[str] = None
    TMDB_BASE_URL: str = "https://api.themoviedb.org/3"
    TMDB_TIMEOUT_SECONDS: int = 10

    # Rate limiting (requests per window)
    AUTH_RATE_LIMIT: int = 10
    AUTH_RATE_WINDOW_SECONDS: int = 15 * 60
    COMMENT_RATE_LIMIT: int = 1
    COMMENT_RATE_WINDOW_SECONDS: int = 60
    VOTE_RATE_LIMIT: int = 10
    VOTE_RATE_WINDOW_SECONDS: int = 10

    # Comments
    COMMENT_MIN_ACCOUNT_AGE_HOURS: int = 24
    COMMENT_EDIT_WINDOW_HOURS: int = 24
    COMMENT_MAX_DEPTH: int = 5

    @property
    def allowed_origins(self) -> List[str]:
        origins = list(self.CORS_ORIGINS)
        if self.FRONTEND_URL and self.FRONTEND_URL not in origins:
            origins.append(self.FRONTEND_URL)
        return origins

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


def get_settings(request: Request) -> Settings:
    """Dependency returning the settings the running app was built with."""
    return request.app.state.settings
