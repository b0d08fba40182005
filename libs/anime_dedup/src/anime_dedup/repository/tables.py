"""SQLAlchemy tables for the anime catalog and the merge snapshot store."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, validates

from ..matching.titles import normalize_title

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(UTC)


class AnimeRow(Base):
    __tablename__ = "anime"

    id = Column(String(64), primary_key=True)
    title = Column(String(512), nullable=False)
    # Maintained from ``title``; used by the ingestion cross-check
    normalized_title = Column(String(512), nullable=True, index=True)
    title_english = Column(String(512), nullable=True)
    title_romaji = Column(String(512), nullable=True)
    alternate_titles = Column(JSON, default=list)

    my_anime_list_id = Column(Integer, nullable=True, index=True)
    anilist_id = Column(Integer, nullable=True, index=True)

    year = Column(Integer, nullable=True)
    episodes = Column(Integer, nullable=True)
    total_episodes = Column(Integer, nullable=True)
    type = Column(String(16), nullable=True)
    genres = Column(JSON, default=list)
    studios = Column(JSON, default=list)
    rating = Column(Float, nullable=True)
    poster_url = Column(String(1024), nullable=True)
    description = Column(Text, nullable=True)

    # Consolidation fields, written only by the merge orchestrator
    consolidated = Column(Boolean, default=False, nullable=False)
    series_key = Column(String(512), nullable=True, index=True)
    seasons = Column(JSON, nullable=True)

    @validates("title")
    def _sync_normalized_title(self, key: str, value: str | None) -> str | None:
        self.normalized_title = normalize_title(value) if value else None
        return value


class WatchlistRow(Base):
    __tablename__ = "watchlist"

    id = Column(String(64), primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)
    anime_id = Column(String(64), nullable=False, index=True)
    status = Column(String(32), nullable=True)
    progress = Column(Integer, nullable=True)
    user_rating = Column(Float, nullable=True)
    notes = Column(Text, nullable=True)


class ReviewRow(Base):
    __tablename__ = "reviews"

    id = Column(String(64), primary_key=True)
    anime_id = Column(String(64), nullable=False, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    rating = Column(Float, nullable=True)
    body = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)


class CustomListRow(Base):
    __tablename__ = "custom_lists"

    id = Column(String(64), primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)
    name = Column(String(256), nullable=False)
    anime_ids = Column(JSON, default=list)


class MergeBatchRow(Base):
    __tablename__ = "merge_batches"

    id = Column(String(64), primary_key=True)
    batch_id = Column(String(128), nullable=False, index=True)
    group_key = Column(String(512), nullable=False)
    primary_id = Column(String(64), nullable=False)
    duplicate_ids = Column(JSON, default=list)
    anime_snapshots = Column(JSON, default=list)
    reference_snapshots = Column(JSON, default=dict)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
