"""Application configuration via Pydantic BaseSettings."""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    development = "development"
    staging = "staging"
    production = "production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Backend REST API
    API_BASE_URL: str = "http://localhost:5000"
    API_TIMEOUT: float | None = None  # None disables the client-side timeout

    # Environment
    ENVIRONMENT: Environment = Environment.development

    # Logging
    LOG_LEVEL: str = "INFO"

    # Sidebar badge polling
    REMINDER_POLL_INTERVAL_SECONDS: int = 60

    # Interaction logging
    FALLBACK_DOSSIER_ID: int = 1  # Used when the form is opened without a dossier

    # Navigation targets (full-page redirects)
    APP_ROOT_PATH: str = "/"
    LOGIN_PATH: str = "/api/login"
    LOGOUT_PATH: str = "/api/logout"


@lru_cache
def get_settings() -> Settings:
    """Singleton settings instance."""
    return Settings()
