"""
Application configuration using pydantic-settings.

Environment Variables:
    FOOTBALL_LEAGUE_DATABASE_PATH: SQLite database file
    FOOTBALL_LEAGUE_ENVIRONMENT: development or production
    FOOTBALL_LEAGUE_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
    FOOTBALL_LEAGUE_SEED_DEMO_DATA: Seed demo data when the API starts
    FOOTBALL_LEAGUE_API_HOST / FOOTBALL_LEAGUE_API_PORT: Bind address for ``serve``
"""

import logging
import sys
from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FOOTBALL_LEAGUE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    environment: str = "development"
    log_level: str = "INFO"

    database_path: str = "football.db"
    seed_demo_data: bool = False

    api_host: str = "127.0.0.1"
    api_port: int = 3000

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @property
    def is_production(self) -> bool:
        return self.environment.lower() in ("production", "prod")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


LOG_FORMATS = {
    "production": '{"timestamp":"%(asctime)s","level":"%(levelname)s","logger":"%(name)s","message":"%(message)s"}',
    "development": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
}


def log_formatter(settings: Settings) -> logging.Formatter:
    """JSON-like lines in production, human-readable lines elsewhere."""
    return logging.Formatter(LOG_FORMATS["production" if settings.is_production else "development"])


def configure_logging(settings: Optional[Settings] = None) -> logging.Logger:
    """Set the root log level and attach a stdout handler if none is installed.

    Handlers installed by the host process (uvicorn, pytest) are left in place.
    """
    settings = settings or get_settings()
    root_logger = logging.getLogger()
    root_logger.setLevel(settings.log_level)

    if not root_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(log_formatter(settings))
        root_logger.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    return root_logger
