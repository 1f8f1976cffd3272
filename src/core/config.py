from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    DATABASE_URL: str = "sqlite:///./bto.db"

    # Security
    JWT_SECRET: str = "change-me-in-production"
    JWT_ALGORITHM: str = "HS256"

    # Application
    ENVIRONMENT: str = "development"
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]
    API_VERSION: str = "v1"
    API_TITLE: str = "BTO Allocation API"
    API_DESCRIPTION: str = "Flat applications, approvals, bookings and withdrawals for BTO projects"

    # Features
    ENABLE_DOCS: bool = True
    ENABLE_REDOC: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"

    # Application windows are calendar dates in this UTC offset (Singapore)
    TIMEZONE_OFFSET_HOURS: float = 8.0


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
