"""
Configuration Module
Version: 1.0.0

Centralized configuration with validation.
All values can be overridden from the environment or a .env file.
"""
import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("configuration")


class Settings(BaseSettings):

    # =========================================================================
    # APPLICATION
    # =========================================================================
    APP_ENV: str = Field(default="development")
    APP_NAME: str = Field(default="Provider Orders Service")
    APP_VERSION: str = Field(default="1.0.0")
    LOG_LEVEL: str = Field(default="INFO")

    # =========================================================================
    # UPSTREAM BOOKING API
    # =========================================================================
    ORDERS_API_URL: str = Field(
        default="http://localhost:5000/api/service",
        description="Base URL of the booking API that owns orders and housekeeping bookings"
    )
    ORDERS_API_TOKEN: Optional[str] = Field(
        default=None,
        description="Bearer token forwarded to the booking API"
    )

    # =========================================================================
    # HTTP CLIENT
    # =========================================================================
    HTTP_TIMEOUT: float = Field(default=30.0)
    HTTP_MAX_RETRIES: int = Field(default=2)

    # =========================================================================
    # CIRCUIT BREAKER
    # =========================================================================
    CIRCUIT_FAILURE_THRESHOLD: int = Field(default=3)
    CIRCUIT_OPEN_SECONDS: int = Field(default=60)

    # =========================================================================
    # PAGINATION
    # =========================================================================
    DEFAULT_PAGE_SIZE: int = Field(default=10)
    MAX_PAGE_SIZE: int = Field(default=100)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    # =========================================================================
    # COMPUTED PROPERTIES
    # =========================================================================
    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def DEBUG(self) -> bool:
        return self.APP_ENV == "development"

    # =========================================================================
    # VALIDATORS
    # =========================================================================
    @field_validator('ORDERS_API_URL')
    @classmethod
    def validate_url(cls, v: str) -> str:
        if v and not v.startswith(('http://', 'https://')):
            raise ValueError(f"URL must start with http or https: {v}")
        return v.rstrip('/') if v else v

    @field_validator('DEFAULT_PAGE_SIZE', 'MAX_PAGE_SIZE', 'CIRCUIT_FAILURE_THRESHOLD')
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"Value must be at least 1, got {v}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Fails loudly if the environment holds invalid values.
    """
    try:
        return Settings()
    except Exception as e:
        logger.critical(f"Could not load settings: {e}")
        raise
