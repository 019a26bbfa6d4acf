"""
Configuration module for catalog service.

This module provides centralized configuration management using Pydantic settings.
All configuration values can be overridden via environment variables or .env file.
"""

from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings for the catalog service.

    Attributes:
        CATALOG_API_URL: Base URL of the commerce API proxy
        REQUEST_TIMEOUT: Timeout for upstream HTTP requests in seconds
        MAX_RETRY_ATTEMPTS: Attempts per upstream call (first try included)
        RETRY_BASE_DELAY_SECONDS: Base of the exponential backoff
        RETRY_MAX_JITTER_SECONDS: Upper bound of the random jitter added to each delay
        CACHE_DEFAULT_TTL_SECONDS: TTL used when a put has no explicit TTL
        CACHE_MAX_SIZE: Entries kept before the oldest one is evicted
        CACHE_CLEANUP_INTERVAL_SECONDS: Period of the background expiry sweep
        REDIS_URL: Optional Redis URL for durable cache backing
        LOG_LEVEL: Logging level
    """

    SERVICE_NAME: str = Field(default="catalog-service")

    # Upstream
    CATALOG_API_URL: str = Field(
        default="http://localhost:3001/api/square",
        description="Base URL of the commerce API proxy",
    )
    REQUEST_TIMEOUT: float = Field(default=10.0, gt=0, le=60.0)
    CURRENCY: str = Field(default="USD", min_length=3, max_length=3)

    # Retry policy
    MAX_RETRY_ATTEMPTS: int = Field(default=3, ge=1, le=10)
    RETRY_BASE_DELAY_SECONDS: float = Field(default=1.0, ge=0)
    RETRY_MAX_JITTER_SECONDS: float = Field(default=1.0, ge=0)

    # Cache
    CACHE_DEFAULT_TTL_SECONDS: int = Field(default=300, gt=0)
    CACHE_MAX_SIZE: int = Field(default=50, gt=0)
    CACHE_CLEANUP_INTERVAL_SECONDS: int = Field(default=300, gt=0)
    CACHE_NAMESPACE: str = Field(default="catalog-cache")
    REDIS_URL: Optional[str] = Field(
        default=None,
        description="Enables durable cache backing when set",
    )

    # Per-resource TTLs
    LOCATIONS_TTL_SECONDS: int = Field(default=30 * 60, gt=0)
    PRODUCTS_TTL_SECONDS: int = Field(default=2 * 60, gt=0)
    CATEGORIES_TTL_SECONDS: int = Field(default=60 * 60, gt=0)
    DISCOUNTS_TTL_SECONDS: int = Field(default=15 * 60, gt=0)
    MODIFIERS_TTL_SECONDS: int = Field(default=30 * 60, gt=0)

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO"
    )
    LOG_JSON: bool = Field(default=False)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator("CATALOG_API_URL")
    @classmethod
    def validate_url(cls, value: str) -> str:
        """
        Validate the upstream URL and strip any trailing slash.

        Raises:
            ValueError: If URL is empty or not http(s)
        """
        if not value:
            raise ValueError("Service URL cannot be empty")

        value = value.rstrip("/")

        if not (value.startswith("http://") or value.startswith("https://")):
            raise ValueError(
                f"Service URL must start with http:// or https://, got: {value}"
            )

        return value


# Global settings instance
settings = Settings()
