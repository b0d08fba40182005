"""HTTP service and CLI runtime configuration."""

from pydantic import BaseModel, Field, field_validator

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ServiceConfig(BaseModel):
    """Settings for ``dedup_service`` and ``scripts/run_deduplication.py``."""

    dedup_service_host: str = Field(default="0.0.0.0", description="Bind address")
    dedup_service_port: int = Field(default=8020, ge=1, le=65535, description="Bind port")

    api_title: str = Field(default="Anime Deduplication Service", description="OpenAPI title")
    api_version: str = Field(default="1.0.0", description="Reported service version")
    api_description: str = Field(
        default="Entity resolution, merge and rollback for the anime catalog",
        description="OpenAPI description",
    )

    # Request size limits
    max_preview_groups: int = Field(
        default=200, ge=1, le=5000, description="Upper bound for ?limit= on the group preview"
    )
    max_ingest_batch_size: int = Field(
        default=1000, ge=1, le=10000, description="Raw records accepted by one /ingest/prepare call"
    )

    log_level: str = Field(default="INFO", description="Root log level")
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="logging.basicConfig format string",
    )

    # Admin endpoints are called from the catalog dashboard
    allowed_origins: list[str] = Field(default=["*"], description="CORS origins")
    allowed_methods: list[str] = Field(default=["GET", "POST"], description="CORS methods")
    allowed_headers: list[str] = Field(default=["*"], description="CORS headers")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Log level must be one of: {list(_LOG_LEVELS)}")
        return level
