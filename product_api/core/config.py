"""
Product API Configuration

Configuration management with environment variable support.
Primary and replica databases are configured independently; the cache TTL
and the cache failure policy are explicit settings.
"""

from enum import Enum
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file
load_dotenv()


class CacheFailurePolicy(str, Enum):
    """What a cache-touching route does when the cache is unavailable."""

    FAIL_CLOSED = "fail_closed"
    FAIL_OPEN = "fail_open"


class Settings(BaseSettings):
    """Application settings with validation and secure defaults."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="ignore"
    )

    # Environment settings
    ENVIRONMENT: str = Field(
        default="development", description="Application environment"
    )
    SERVICE_NAME: str = Field(
        default="product-api", description="Service name used in logs"
    )

    # Database configuration
    PRIMARY_DATABASE_URL: str = Field(
        ...,
        description="Primary (read-write) database URL",
    )
    REPLICA_DATABASE_URL: str = Field(
        ...,
        description="Replica (read-only) database URL",
    )
    DATABASE_POOL_SIZE: int = Field(
        default=10, ge=1, le=100, description="Connection pool size per engine"
    )
    DATABASE_MAX_OVERFLOW: int = Field(
        default=10, ge=0, le=100, description="Maximum overflow connections"
    )
    DATABASE_POOL_TIMEOUT: int = Field(
        default=30, ge=1, le=300, description="Connection pool timeout in seconds"
    )
    QUERY_TIMEOUT_SECONDS: int = Field(
        default=30, ge=1, le=300, description="Query timeout in seconds"
    )

    # Redis configuration
    REDIS_URL: str = Field(
        default="redis://localhost:6379", description="Redis connection URL"
    )
    REDIS_MAX_CONNECTIONS: int = Field(
        default=10, ge=1, le=50, description="Redis connection pool size"
    )
    REDIS_CONNECTION_TIMEOUT: float = Field(
        default=5.0, gt=0, le=60, description="Redis connect timeout in seconds"
    )
    REDIS_OPERATION_TIMEOUT: float = Field(
        default=2.0, gt=0, le=60, description="Redis operation timeout in seconds"
    )
    REDIS_HEALTH_CHECK_INTERVAL: float = Field(
        default=5.0,
        gt=0,
        le=300,
        description="Seconds between cache liveness probes",
    )

    # Cache-aside configuration
    CACHE_TTL_SECONDS: int = Field(
        default=60, ge=1, le=86400, description="TTL applied to every cached entry"
    )
    CACHE_KEY_PREFIX: str = Field(
        default="product", min_length=1, description="Entity type used in cache keys"
    )
    CACHE_FAILURE_POLICY: CacheFailurePolicy = Field(
        default=CacheFailurePolicy.FAIL_CLOSED,
        description="fail_closed rejects requests while the cache is down; "
        "fail_open serves them without the cache",
    )

    # API configuration
    API_HOST: str = Field(default="0.0.0.0", description="API server host")
    API_PORT: int = Field(default=3000, ge=1, le=65535, description="API server port")

    # Development and debugging
    DEBUG: bool = Field(default=False, description="Enable debug mode")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")

    @field_validator("PRIMARY_DATABASE_URL", "REPLICA_DATABASE_URL")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL format and select the asyncpg driver."""
        if v.startswith("postgresql+asyncpg://"):
            return v
        if v.startswith("postgresql://"):
            return "postgresql+asyncpg://" + v[len("postgresql://") :]
        raise ValueError("Database URLs must be PostgreSQL connection URLs")

    @field_validator("REDIS_URL")
    @classmethod
    def validate_redis_url(cls, v: str) -> str:
        """Validate Redis URL scheme."""
        if not v.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError("REDIS_URL must be a redis:// URL")
        return v

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment value."""
        allowed = ["development", "test", "staging", "production"]
        if v not in allowed:
            raise ValueError(f"ENVIRONMENT must be one of: {allowed}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of: {allowed}")
        return v.upper()

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"

    @property
    def fail_open(self) -> bool:
        return self.CACHE_FAILURE_POLICY is CacheFailurePolicy.FAIL_OPEN

    def redacted_url(self, url: Optional[str]) -> str:
        """Return host:port/db part of a URL, without credentials."""
        if not url:
            return ""
        return url.rsplit("@", 1)[-1]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
