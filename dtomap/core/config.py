"""
Configuration management for dtomap.

Provides process-wide conversion defaults from environment variables
with proper type checking and defaults.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dtomap.core.exceptions import ConfigurationError

DEFAULT_DATE_PATTERN = "yyyy-MM-dd HH:mm:ss"


class Settings(BaseSettings):
    """Process-wide defaults used when a conversion scope sets nothing."""

    # Environment
    environment: str = Field(default="production", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")

    # Conversion defaults
    date_pattern: str = Field(default=DEFAULT_DATE_PATTERN, alias="DTOMAP_DATE_PATTERN")
    decimal_scale: Optional[int] = Field(default=None, alias="DTOMAP_DECIMAL_SCALE")
    lenient_dates: bool = Field(default=False, alias="DTOMAP_LENIENT_DATES")

    @field_validator("debug", "lenient_dates", mode="before")
    @classmethod
    def parse_flag(cls, v):
        if isinstance(v, str):
            return v.lower() in ("1", "true", "yes")
        return bool(v)

    @field_validator("decimal_scale", mode="before")
    @classmethod
    def parse_scale(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("decimal_scale")
    @classmethod
    def validate_scale(cls, v):
        if v is not None and v < 0:
            raise ValueError("decimal scale must be non-negative")
        return v

    @field_validator("date_pattern")
    @classmethod
    def validate_pattern(cls, v):
        if not v.strip():
            raise ValueError("date pattern must not be blank")
        return v

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global settings
    if settings is None:
        try:
            settings = Settings()
        except ValidationError as e:
            raise ConfigurationError(
                "Invalid dtomap configuration", details={"errors": e.errors()}
            ) from e
    return settings


def reset_settings() -> None:
    """Drop the cached settings so the next access re-reads the environment."""
    global settings
    settings = None


def configuration_summary() -> Dict[str, Any]:
    """Return the effective configuration for display."""
    config = get_settings()
    return {
        "environment": config.environment,
        "debug": config.debug,
        "date_pattern": config.date_pattern,
        "decimal_scale": config.decimal_scale,
        "lenient_dates": config.lenient_dates,
    }
