"""
Application configuration using Pydantic Settings.

Supports hierarchical environment configuration:
- .env.base: Common non-secret defaults (committed to git)
- .env.{ENVIRONMENT}: Environment-specific overrides (gitignored)
- Environment variables: Highest priority
"""

import os
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Get environment from env var, default to development
ENV = os.getenv("ENVIRONMENT", "development")


class Settings(BaseSettings):
    """Application settings with hierarchical env file support."""

    model_config = SettingsConfigDict(
        env_file=[
            ".env.base",  # Common defaults (committed)
            f".env.{ENV}",  # Environment overrides (gitignored)
        ],
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "test", "production"] = "development"

    cors_origins: list[str] = ["http://localhost:3001", "http://127.0.0.1:3001"]

    # Reasoning backend (OpenRouter chat completions)
    openrouter_api_key: str = ""  # Empty = assistant not configured
    openrouter_model: str = "google/gemini-2.5-flash"
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    openrouter_referer: str = "https://actualbudget.org"  # Required by OpenRouter
    openrouter_app_title: str = "Actual Budget"
    llm_request_timeout_seconds: float = 120.0

    # Conversation loop
    assistant_max_tool_rounds: int = Field(default=1, ge=1)
    assistant_turn_timeout_seconds: float | None = None  # None = no deadline

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_storage_uri: str = "memory://"
    rate_limit_chat: str = "10/minute"

    @property
    def assistant_configured(self) -> bool:
        """Check whether a reasoning backend credential is present."""
        return bool(self.openrouter_api_key)

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
