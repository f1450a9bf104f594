"""
Configuration Management for the Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here and frozen.
Settings are built once at process start and handed to the services by
reference; nothing mutates them afterwards.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database connection configuration."""

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        extra="ignore",
        frozen=True,
    )

    url: str = Field(
        default="sqlite+aiosqlite:///./ledger.db",
        description="SQLAlchemy async database URL"
    )
    echo: bool = Field(
        default=False,
        description="Echo SQL statements (debugging only)"
    )
    connect_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts to reach the database at startup"
    )


class AuthSettings(BaseSettings):
    """Token signing and password hashing configuration."""

    model_config = SettingsConfigDict(
        env_prefix="AUTH_",
        extra="ignore",
        frozen=True,
    )

    jwt_secret: str = Field(
        ...,
        min_length=16,
        description="HMAC key used to sign session tokens"
    )
    jwt_algorithm: str = Field(
        default="HS256",
        description="JWT signing algorithm"
    )
    token_ttl_hours: int = Field(
        default=24,
        ge=1,
        description="Session token lifetime in hours"
    )
    bcrypt_rounds: int = Field(
        default=12,
        ge=4,
        le=31,
        description="bcrypt cost factor"
    )

    @field_validator('jwt_algorithm')
    @classmethod
    def validate_algorithm(cls, v: str) -> str:
        """Only HMAC algorithms are supported (single shared key)."""
        if v not in {"HS256", "HS384", "HS512"}:
            raise ValueError(f"Unsupported JWT algorithm: {v}")
        return v


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level"
    )

    # Listing defaults
    default_page_limit: int = Field(
        default=100,
        ge=1,
        le=1000,
        description="Page size used when the client sends none (also the cap)"
    )

    # Category hierarchy
    max_category_depth: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Longest ancestor chain accepted for a new category"
    )

    # Per-request deadline
    request_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Deadline for a single request's storage work"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    app: AppSettings = Field(default_factory=AppSettings)


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()
