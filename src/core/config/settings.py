#!/usr/bin/env python3
"""
Centralized Configuration Module using Pydantic Settings

This module provides type-safe, environment-based configuration for the
catalog service. All configuration is centralized here so the cache engine,
the async cache façade and the catalog service read the same values.

Architectural Decision: Pydantic Settings for type safety and validation
- Environment variable loading with .env support
- Type validation at startup (fail fast on misconfiguration)
- Grouped views (redis, cache, catalog, logging, app) over one flat settings class
- Easy testing with override mechanisms
"""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RedisSettings(BaseSettings):
    """
    Redis connection configuration.

    STAGE-0.1: Redis connection configuration

    One long-lived client handle is shared by the whole process; no pool
    sizing is exposed at this layer.
    """

    REDIS_HOST: str = Field(default="localhost", description="Redis server host")
    REDIS_PORT: int = Field(default=6379, description="Redis server port")
    REDIS_DB: int = Field(default=0, description="Redis database number")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password (if required)")
    REDIS_SOCKET_TIMEOUT: int = Field(default=5, description="Socket timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: int = Field(default=5, description="Connection timeout in seconds")
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(default=30, description="Health check interval in seconds")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class CacheSettings(BaseSettings):
    """
    Cache TTL and retry configuration.

    STAGE-2: Cache TTL configuration

    Single products and product lists have separate TTLs; lists live longer
    because they are invalidated explicitly on every write.
    """

    CACHE_PRODUCT_TTL: int = Field(default=60, gt=0, description="Single product cache TTL (seconds)")
    CACHE_PRODUCT_LIST_TTL: int = Field(default=300, gt=0, description="Product list cache TTL (seconds)")
    CACHE_DEFAULT_TTL: int = Field(default=60, gt=0, description="Fallback TTL (seconds)")

    CACHE_RETRY_MAX_RETRIES: int = Field(default=3, ge=0, description="Retries after the first attempt")
    CACHE_RETRY_INITIAL_DELAY_MS: int = Field(default=100, ge=0, description="First backoff delay (ms)")
    CACHE_RETRY_BACKOFF_FACTOR: float = Field(default=2.0, ge=1.0, description="Backoff multiplier")
    CACHE_RETRY_MAX_DELAY_MS: int = Field(default=1000, ge=0, description="Backoff ceiling (ms)")

    CACHE_SCAN_COUNT: int = Field(default=100, gt=0, description="Keys per SCAN round-trip")
    CACHE_HEALTH_CHECK_TTL: int = Field(default=5, gt=0, description="TTL of the health probe key (seconds)")
    CACHE_DRAIN_TIMEOUT: float = Field(default=5.0, ge=0, description="Shutdown drain budget (seconds)")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class CatalogSettings(BaseSettings):
    """
    Product catalog configuration: pagination and cache feature flags.

    STAGE-P: Catalog behaviour switches
    """

    PRODUCT_DEFAULT_PAGE: int = Field(default=1, gt=0, description="Default page number")
    PRODUCT_DEFAULT_LIMIT: int = Field(default=10, gt=0, description="Default page size")
    PRODUCT_MAX_LIMIT: int = Field(default=100, gt=0, description="Maximum page size")
    PRODUCT_SEARCH_MIN_LENGTH: int = Field(default=3, ge=0, description="Minimum search term length")

    PRODUCT_ASYNC_CACHE_ENABLED: bool = Field(default=True, description="Enable async cache writes")
    PRODUCT_ENABLE_CACHE_INVALIDATION: bool = Field(default=True, description="Enable single-product invalidation")
    PRODUCT_ENABLE_LIST_INVALIDATION: bool = Field(default=True, description="Enable product list invalidation")
    PRODUCT_ENABLE_EVENT_EMISSION: bool = Field(default=False, description="Enable product event emission")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class LoggingSettings(BaseSettings):
    """
    Logging configuration for structured logging.

    STAGE-L: Logging configuration

    Architectural Decision: structlog for production-grade logging
    """

    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class ApplicationSettings(BaseSettings):
    """
    General application settings.

    STAGE-0: Application initialization
    """

    ENVIRONMENT: Literal["development", "test", "staging", "production"] = Field(
        default="development",
        description="Application environment"
    )
    DEBUG: bool = Field(default=False, description="Debug mode")
    APP_NAME: str = Field(default="Catalog Cache Service", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")
    API_HOST: str = Field(default="0.0.0.0", description="API host")
    API_PORT: int = Field(default=8000, description="API port")
    API_BASE_PATH: str = Field(default="/api/v1", description="Prefix for all API routes")
    CORS_ORIGINS: list[str] = Field(default=["*"], description="Allowed CORS origins")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class Settings(BaseSettings):
    """
    Main settings class that aggregates all configuration sections.

    STAGE-0: Centralized configuration initialization

    Usage:
        from src.core.config.settings import get_settings

        settings = get_settings()
        ttl = settings.cache.CACHE_PRODUCT_TTL
        if settings.catalog.PRODUCT_ASYNC_CACHE_ENABLED:
            ...
    """

    # Redis settings
    REDIS_HOST: str = Field(default="localhost", description="Redis server host")
    REDIS_PORT: int = Field(default=6379, description="Redis server port")
    REDIS_DB: int = Field(default=0, description="Redis database number")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password (if required)")
    REDIS_SOCKET_TIMEOUT: int = Field(default=5, description="Socket timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: int = Field(default=5, description="Connection timeout in seconds")
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(default=30, description="Health check interval in seconds")

    # Cache settings
    CACHE_PRODUCT_TTL: int = Field(default=60, gt=0, description="Single product cache TTL (seconds)")
    CACHE_PRODUCT_LIST_TTL: int = Field(default=300, gt=0, description="Product list cache TTL (seconds)")
    CACHE_DEFAULT_TTL: int = Field(default=60, gt=0, description="Fallback TTL (seconds)")
    CACHE_RETRY_MAX_RETRIES: int = Field(default=3, ge=0, description="Retries after the first attempt")
    CACHE_RETRY_INITIAL_DELAY_MS: int = Field(default=100, ge=0, description="First backoff delay (ms)")
    CACHE_RETRY_BACKOFF_FACTOR: float = Field(default=2.0, ge=1.0, description="Backoff multiplier")
    CACHE_RETRY_MAX_DELAY_MS: int = Field(default=1000, ge=0, description="Backoff ceiling (ms)")
    CACHE_SCAN_COUNT: int = Field(default=100, gt=0, description="Keys per SCAN round-trip")
    CACHE_HEALTH_CHECK_TTL: int = Field(default=5, gt=0, description="TTL of the health probe key (seconds)")
    CACHE_DRAIN_TIMEOUT: float = Field(default=5.0, ge=0, description="Shutdown drain budget (seconds)")

    # Catalog settings
    PRODUCT_DEFAULT_PAGE: int = Field(default=1, gt=0, description="Default page number")
    PRODUCT_DEFAULT_LIMIT: int = Field(default=10, gt=0, description="Default page size")
    PRODUCT_MAX_LIMIT: int = Field(default=100, gt=0, description="Maximum page size")
    PRODUCT_SEARCH_MIN_LENGTH: int = Field(default=3, ge=0, description="Minimum search term length")
    PRODUCT_ASYNC_CACHE_ENABLED: bool = Field(default=True, description="Enable async cache writes")
    PRODUCT_ENABLE_CACHE_INVALIDATION: bool = Field(default=True, description="Enable single-product invalidation")
    PRODUCT_ENABLE_LIST_INVALIDATION: bool = Field(default=True, description="Enable product list invalidation")
    PRODUCT_ENABLE_EVENT_EMISSION: bool = Field(default=False, description="Enable product event emission")

    # Logging settings
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    # Application settings
    ENVIRONMENT: Literal["development", "test", "staging", "production"] = Field(
        default="development",
        description="Application environment"
    )
    DEBUG: bool = Field(default=False, description="Debug mode")
    APP_NAME: str = Field(default="Catalog Cache Service", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")
    API_HOST: str = Field(default="0.0.0.0", description="API host")
    API_PORT: int = Field(default=8000, description="API port")
    API_BASE_PATH: str = Field(default="/api/v1", description="Prefix for all API routes")
    CORS_ORIGINS: list[str] = Field(default=["*"], description="Allowed CORS origins")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    # Grouped views
    @property
    def redis(self) -> RedisSettings:
        """Get Redis settings."""
        return RedisSettings(
            REDIS_HOST=self.REDIS_HOST,
            REDIS_PORT=self.REDIS_PORT,
            REDIS_DB=self.REDIS_DB,
            REDIS_PASSWORD=self.REDIS_PASSWORD,
            REDIS_SOCKET_TIMEOUT=self.REDIS_SOCKET_TIMEOUT,
            REDIS_SOCKET_CONNECT_TIMEOUT=self.REDIS_SOCKET_CONNECT_TIMEOUT,
            REDIS_HEALTH_CHECK_INTERVAL=self.REDIS_HEALTH_CHECK_INTERVAL,
        )

    @property
    def cache(self) -> CacheSettings:
        """Get cache settings."""
        return CacheSettings(
            CACHE_PRODUCT_TTL=self.CACHE_PRODUCT_TTL,
            CACHE_PRODUCT_LIST_TTL=self.CACHE_PRODUCT_LIST_TTL,
            CACHE_DEFAULT_TTL=self.CACHE_DEFAULT_TTL,
            CACHE_RETRY_MAX_RETRIES=self.CACHE_RETRY_MAX_RETRIES,
            CACHE_RETRY_INITIAL_DELAY_MS=self.CACHE_RETRY_INITIAL_DELAY_MS,
            CACHE_RETRY_BACKOFF_FACTOR=self.CACHE_RETRY_BACKOFF_FACTOR,
            CACHE_RETRY_MAX_DELAY_MS=self.CACHE_RETRY_MAX_DELAY_MS,
            CACHE_SCAN_COUNT=self.CACHE_SCAN_COUNT,
            CACHE_HEALTH_CHECK_TTL=self.CACHE_HEALTH_CHECK_TTL,
            CACHE_DRAIN_TIMEOUT=self.CACHE_DRAIN_TIMEOUT,
        )

    @property
    def catalog(self) -> CatalogSettings:
        """Get catalog settings."""
        return CatalogSettings(
            PRODUCT_DEFAULT_PAGE=self.PRODUCT_DEFAULT_PAGE,
            PRODUCT_DEFAULT_LIMIT=self.PRODUCT_DEFAULT_LIMIT,
            PRODUCT_MAX_LIMIT=self.PRODUCT_MAX_LIMIT,
            PRODUCT_SEARCH_MIN_LENGTH=self.PRODUCT_SEARCH_MIN_LENGTH,
            PRODUCT_ASYNC_CACHE_ENABLED=self.PRODUCT_ASYNC_CACHE_ENABLED,
            PRODUCT_ENABLE_CACHE_INVALIDATION=self.PRODUCT_ENABLE_CACHE_INVALIDATION,
            PRODUCT_ENABLE_LIST_INVALIDATION=self.PRODUCT_ENABLE_LIST_INVALIDATION,
            PRODUCT_ENABLE_EVENT_EMISSION=self.PRODUCT_ENABLE_EVENT_EMISSION,
        )

    @property
    def logging(self) -> LoggingSettings:
        """Get logging settings."""
        return LoggingSettings(LOG_LEVEL=self.LOG_LEVEL, LOG_FORMAT=self.LOG_FORMAT)

    @property
    def app(self) -> ApplicationSettings:
        """Get application settings."""
        return ApplicationSettings(
            ENVIRONMENT=self.ENVIRONMENT,
            DEBUG=self.DEBUG,
            APP_NAME=self.APP_NAME,
            APP_VERSION=self.APP_VERSION,
            API_HOST=self.API_HOST,
            API_PORT=self.API_PORT,
            API_BASE_PATH=self.API_BASE_PATH,
            CORS_ORIGINS=self.CORS_ORIGINS,
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"  # Ignore extra environment variables
    )


# Global settings instance (singleton pattern)
_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get the global settings instance (singleton).

    STAGE-0.3: Settings initialization

    Returns:
        Settings: Global settings instance
    """
    global _settings

    if _settings is None:
        _settings = Settings()

    return _settings


def reload_settings() -> Settings:
    """
    Reload settings (useful for testing).

    Returns:
        Settings: New settings instance
    """
    global _settings
    _settings = Settings()
    return _settings
