# File: app/core/config.py
"""
Configuration settings for TaskCadence.

This module defines application settings using Pydantic's BaseSettings,
which supports environment variable loading and validation.
"""

import json
from typing import List, Union

from pydantic import AnyHttpUrl, validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    This class uses Pydantic's BaseSettings to load configuration from
    environment variables, with validation and type conversion.
    """

    # API settings
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "TaskCadence"

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # CORS
    BACKEND_CORS_ORIGINS: List[Union[AnyHttpUrl, str]] = []

    @validator("BACKEND_CORS_ORIGINS", pre=True)
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse CORS origins from environment variables."""
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return parsed
            except json.JSONDecodeError:
                # Fallback to comma-separated format
                return [i.strip() for i in v.split(",") if i.strip()]
        return v or []

    # Database
    DATABASE_URL: str = "sqlite:///./taskcadence.db"
    DB_ECHO: bool = False

    # Recurrence engine limits
    RECURRENCE_PREVIEW_DEFAULT_COUNT: int = 5
    RECURRENCE_PREVIEW_MAX_COUNT: int = 50
    RECURRENCE_GENERATE_BATCH_LIMIT: int = 500
    UPCOMING_OCCURRENCES_COUNT: int = 5

    @validator("LOG_LEVEL")
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid logging level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        return v.upper() if v.upper() in valid_levels else "INFO"

    @validator("RECURRENCE_PREVIEW_DEFAULT_COUNT", "UPCOMING_OCCURRENCES_COUNT")
    def validate_preview_count(cls, v: int) -> int:
        """Keep preview sizes small and positive."""
        return max(1, min(v, 100))

    @validator("RECURRENCE_PREVIEW_MAX_COUNT")
    def validate_preview_max(cls, v: int) -> int:
        """Hard cap for caller-supplied preview counts."""
        return max(1, min(v, 1000))

    @validator("RECURRENCE_GENERATE_BATCH_LIMIT")
    def validate_batch_limit(cls, v: int) -> int:
        """Validate the number of schedules processed per generation run."""
        return max(1, min(v, 10000))

    class Config:
        """Pydantic settings configuration."""

        case_sensitive = True
        env_file = ".env"


# Create settings instance
settings = Settings()
