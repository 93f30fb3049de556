"""
Application configuration settings.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # Application Configuration
    APP_NAME: str = "Journey Builder Core"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "production"
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Journey storage service
    JOURNEY_API_BASE_URL: str = Field(
        default="http://localhost:3000",
        description="Base URL of the journey storage service"
    )
    JOURNEY_API_TIMEOUT: float = 15.0
    JOURNEY_API_TOKEN: Optional[str] = None

    # Persistence lifecycle
    AUTOSAVE_DEBOUNCE_MS: int = 1000
    TEST_MODE_POLL_INTERVAL_MS: int = 8000
    MAX_TEST_MODE_RETRIES: int = 3

    # Local cache
    ENABLE_LOCAL_CACHE: bool = True
    CACHE_DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./journey_cache.db",
        description="Database URL for the local journey cache"
    )
    CACHE_POOL_RECYCLE: int = 3600

    # API Configuration
    API_V1_STR: str = "/api/v1"
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8080"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: List[str] = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    CORS_ALLOW_HEADERS: List[str] = ["*"]

    # Logging Configuration
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # "json" | "text"
    LOG_FILE: Optional[str] = None

    # Performance Configuration
    MAX_WORKERS: int = 4

    @field_validator('LOG_FORMAT')
    @classmethod
    def validate_log_format(cls, v):
        """Validate log format."""
        valid_formats = ['json', 'text']
        if v.lower() not in valid_formats:
            raise ValueError(f'LOG_FORMAT must be one of: {valid_formats}')
        return v.lower()

    @field_validator('AUTOSAVE_DEBOUNCE_MS', 'TEST_MODE_POLL_INTERVAL_MS', 'MAX_TEST_MODE_RETRIES')
    @classmethod
    def validate_positive(cls, v):
        """Timing and retry knobs must be positive."""
        if v <= 0:
            raise ValueError('value must be positive')
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT.lower() == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT.lower() == "production"

    @property
    def gateway_config(self) -> dict:
        """Get journey storage gateway configuration dictionary."""
        return {
            "base_url": self.JOURNEY_API_BASE_URL,
            "timeout": self.JOURNEY_API_TIMEOUT,
            "token": self.JOURNEY_API_TOKEN,
        }

    @property
    def lifecycle_config(self) -> dict:
        """Get persistence lifecycle timing configuration dictionary."""
        return {
            "autosave_debounce": self.AUTOSAVE_DEBOUNCE_MS / 1000.0,
            "poll_interval": self.TEST_MODE_POLL_INTERVAL_MS / 1000.0,
            "max_retries": self.MAX_TEST_MODE_RETRIES,
        }


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
