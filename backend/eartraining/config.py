"""
Configuration settings for the Ear Training API.
All environment variables and app settings are centralized here.
"""
from pydantic import Field
from pydantic_settings import BaseSettings
from typing import Literal, Optional
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "Ear Training API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"  # development, staging, production

    # API Settings
    API_V1_PREFIX: str = "/api/v1"
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000"
    ]

    # Public URLs (OAuth redirect and email links)
    BACKEND_URL: str = "http://localhost:8000"
    FRONTEND_URL: str = "http://localhost:3000"

    # Azure Cosmos DB
    COSMOS_DB_ENDPOINT: str
    COSMOS_DB_KEY: str
    COSMOS_DB_DATABASE_NAME: str = "ear_training_db"
    # Container names
    COSMOS_DB_USERS_CONTAINER: str = "users"
    COSMOS_DB_PROGRESS_CONTAINER: str = "progress"
    COSMOS_DB_PASSWORD_RESETS_CONTAINER: str = "password_resets"
    COSMOS_DB_CHORD_PROGRESSIONS_CONTAINER: str = "chord_progressions"

    # JWT Authentication
    SECRET_KEY: str  # Gerar com: openssl rand -hex 32
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_DAYS: int = 7
    PASSWORD_MIN_LENGTH: int = 6

    # Google OAuth
    GOOGLE_CLIENT_ID: Optional[str] = None
    GOOGLE_CLIENT_SECRET: Optional[str] = None
    GOOGLE_AUTH_URL: str = "https://accounts.google.com/o/oauth2/v2/auth"
    GOOGLE_TOKEN_URL: str = "https://oauth2.googleapis.com/token"
    GOOGLE_USERINFO_URL: str = "https://www.googleapis.com/oauth2/v2/userinfo"
    GOOGLE_HTTP_TIMEOUT_SECONDS: float = 10.0

    # SMTP (password reset emails)
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_USE_TLS: bool = True
    EMAIL_FROM_NAME: str = "Ear Training App"

    # Password reset
    PASSWORD_RESET_EXPIRE_MINUTES: int = 60

    # Gamification
    LEVEL_CURVE: Literal["power", "sqrt"] = "power"
    RECENT_SESSIONS_LIMIT: int = Field(default=50, ge=0, le=50)  # at most MAX_RECENT_SESSIONS
    RECENT_SESSIONS_RETURNED: int = 10
    STREAK_ACCURACY_THRESHOLD: float = 0.8
    LEADERBOARD_MAX_LIMIT: int = 100

    # Chord progressions catalog
    PROGRESSIONS_PAGE_SIZE: int = 10

    # Logging
    LOG_LEVEL: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to ensure settings are loaded only once.
    """
    return Settings()


# Singleton instance
settings = get_settings()
