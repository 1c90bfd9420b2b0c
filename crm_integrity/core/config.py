"""Application configuration with environment variables."""

import logging

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    VERSION: str = "0.31.0"

    # Database (core schema holds workspaces; each workspace owns its own schema)
    DATABASE_URL: str
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800

    # Workspace schemas are named <prefix><base36 workspace id>
    WORKSPACE_SCHEMA_PREFIX: str = "workspace_"

    # Internal scheduled endpoints (cron jobs)
    INTERNAL_SECRET: str = ""  # Secret for /internal/scheduled/* endpoints

    # Logging
    LOG_LEVEL: str = "INFO"

    @property
    def log_level_value(self) -> int:
        """Parse LOG_LEVEL into a logging level, defaulting to INFO."""
        level = logging.getLevelName(self.LOG_LEVEL.strip().upper())
        return level if isinstance(level, int) else logging.INFO


settings = Settings()
