"""Environment-based configuration using pydantic-settings.

Provides type-safe, validated defaults for retry policies and logging,
read from CLOUDRETRY_* environment variables or a .env file.

Example:
    >>> from cloudretry.foundation.config import get_settings
    >>> settings = get_settings()
    >>> settings.retry.max_attempts
    3
    >>> settings.logging.format
    'stdlib'

    # Or with environment variables:
    # CLOUDRETRY_RETRY_MAX_ATTEMPTS=5
    # CLOUDRETRY_LOG_LEVEL=DEBUG
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, NonNegativeFloat, PositiveFloat, PositiveInt, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RetrySettings(BaseSettings):
    """Default retry policy configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CLOUDRETRY_RETRY_",
        extra="ignore",
    )

    max_attempts: PositiveInt = Field(default=3, description="Upper bound on tries, including the first")
    base_delay: NonNegativeFloat = Field(default=0.1, description="Initial wait in seconds")
    multiplier: Annotated[float, Field(ge=1.0)] = 2.0
    max_delay: NonNegativeFloat = Field(default=20.0, description="Cap on any single wait in seconds")
    jitter: NonNegativeFloat = Field(default=0.0, description="Upper bound of uniform random offset in seconds")
    deadline: PositiveFloat | None = Field(default=None, description="Total time budget in seconds")

    @model_validator(mode="after")
    def _check_bounds(self) -> RetrySettings:
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay")
        return self


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CLOUDRETRY_LOG_",
        extra="ignore",
    )

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["stdlib", "console", "json", "none"] = "stdlib"
    colors: bool | None = None

    @field_validator("level", mode="before")
    @classmethod
    def _normalize_level(cls, v: object) -> object:
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("format", mode="before")
    @classmethod
    def _normalize_format(cls, v: object) -> object:
        return v.strip().lower() if isinstance(v, str) else v


class CloudRetrySettings(BaseSettings):
    """Root settings.

    Example environment variables:
        CLOUDRETRY_RETRY_MAX_ATTEMPTS=5
        CLOUDRETRY_RETRY_JITTER=0.25
        CLOUDRETRY_LOG_FORMAT=json
    """

    model_config = SettingsConfigDict(
        env_prefix="CLOUDRETRY_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    retry: RetrySettings = Field(default_factory=RetrySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache(maxsize=1)
def get_settings() -> CloudRetrySettings:
    """Get the global settings instance (cached)."""
    return CloudRetrySettings()


def clear_settings_cache() -> None:
    """Clear the settings cache so the next get_settings() re-reads the environment."""
    get_settings.cache_clear()
