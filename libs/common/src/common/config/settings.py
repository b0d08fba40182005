"""Settings for the deduplication engine, its HTTP service and the CLI."""

import os
from enum import Enum
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .database_config import DatabaseConfig
from .dedup_config import DedupConfig
from .service_config import ServiceConfig


class Environment(str, Enum):
    """Deployment stage, read from ``APP_ENV``."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


def get_environment() -> Environment:
    """Resolve ``APP_ENV`` (case-insensitive); unset means development.

    Raises:
        ValueError: If APP_ENV names an unknown stage.
    """
    raw = os.getenv("APP_ENV")
    if not raw:
        return Environment.DEVELOPMENT
    try:
        return Environment(raw.lower())
    except ValueError:
        allowed = ", ".join(stage.value for stage in Environment)
        raise ValueError(
            f"Invalid APP_ENV value '{raw.lower()}'. Must be one of: {allowed}"
        ) from None


class Settings(BaseSettings):
    """Root settings object.

    Sections are overridable with a double underscore, e.g.
    ``DATABASE__DATABASE_URL=postgresql+psycopg://...`` or
    ``DEDUP__ROMANIZATION_BRIDGE_MIN_OVERLAP=0.5``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Environment = Field(
        default_factory=get_environment,
        description="Deployment stage (development/staging/production)",
    )
    debug: bool = Field(default=True, description="Auto-reload and verbose errors")

    service: ServiceConfig = Field(default_factory=ServiceConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    dedup: DedupConfig = Field(default_factory=DedupConfig)

    def model_post_init(self, __context) -> None:
        self.apply_environment_settings()

    def apply_environment_settings(self) -> None:
        """Fill stage defaults for anything the environment did not set.

        Development logs at DEBUG, staging at INFO. Production never runs in
        debug mode or echoes SQL, and leaves schema creation to migrations
        unless ``DATABASE__CREATE_SCHEMA`` is given explicitly.
        """
        stage_log_levels = {
            Environment.DEVELOPMENT: "DEBUG",
            Environment.STAGING: "INFO",
        }
        if self.environment in stage_log_levels:
            if os.getenv("DEBUG") is None:
                self.debug = True
            if os.getenv("SERVICE__LOG_LEVEL") is None:
                self.service.log_level = stage_log_levels[self.environment]
            return

        self.debug = False
        self.database.echo = False
        if os.getenv("DATABASE__CREATE_SCHEMA") is None:
            self.database.create_schema = False


@lru_cache
def get_settings() -> Settings:
    """Process-wide settings, loaded once."""
    return Settings()
