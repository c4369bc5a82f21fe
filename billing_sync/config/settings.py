"""
Client settings with Pydantic v2 validation.

Loads configuration from environment variables with sensible defaults.
"""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class APISettings(BaseSettings):
    """Billing API connection configuration."""

    model_config = SettingsConfigDict(env_prefix="API_")

    base_url: str = "http://localhost:8080/api"
    timeout: float = 30.0

    # Retry settings (idempotent reads only)
    max_retries: int = 3
    retry_delay: float = 0.5
    retry_multiplier: float = 2.0

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class PaginationSettings(BaseSettings):
    """List view pagination defaults."""

    model_config = SettingsConfigDict(env_prefix="PAGE_")

    default_page_size: int = Field(default=10, ge=1)


class Settings(BaseSettings):
    """Main client settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Billing Sync"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Sub-settings
    api: APISettings = Field(default_factory=APISettings)
    pagination: PaginationSettings = Field(default_factory=PaginationSettings)


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings (for testing)."""
    global _settings
    _settings = None
