"""Relational store configuration."""

from pydantic import BaseModel, Field, field_validator


class DatabaseConfig(BaseModel):
    """Connection settings for the anime record store."""

    database_url: str = Field(
        default="sqlite:///./data/anime_catalog.db",
        description="SQLAlchemy database URL for the anime, watchlist, review and custom-list tables",
    )
    echo: bool = Field(default=False, description="Log every SQL statement")
    create_schema: bool = Field(
        default=True,
        description="Create missing tables on startup (disable when migrations own the schema)",
    )

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Reject empty URLs early instead of at first connect."""
        if not v or "://" not in v:
            raise ValueError("database_url must be a SQLAlchemy URL, e.g. sqlite:///./data/anime.db")
        return v
