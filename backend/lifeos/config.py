"""
Application configuration using pydantic-settings.
Loads environment variables from .env file.

Nested config groups (UsageConfig, CheckoutConfig) are env-overridable via
the double-underscore delimiter, e.g.:
    USAGE__PAGE_SIZE_MARGIN=50
    CHECKOUT__MERCHANT_NAME="LifeOS Beta"
"""

from functools import lru_cache

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class UsageConfig(BaseModel):
    """Usage counting parameters."""

    # Added to the largest finite plan limit of a feature to get the page size
    page_size_margin: int = Field(default=30, ge=0)
    min_page_size: int = Field(default=20, ge=1)


class CheckoutConfig(BaseModel):
    """Values handed to the external checkout widget."""

    merchant_name: str = "LifeOS"
    theme_color: str = "#6366f1"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    # Backend API
    api_base_url: str = "http://localhost:3000/api"
    request_timeout_seconds: float = 30.0

    # App Settings
    debug: bool = False

    # Nested config groups (env-overridable via SECTION__KEY format)
    usage: UsageConfig = Field(default_factory=UsageConfig)
    checkout: CheckoutConfig = Field(default_factory=CheckoutConfig)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
