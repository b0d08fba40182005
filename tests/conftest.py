"""
Root test configuration for all tests.

Provides an isolated in-memory store so no test touches the configured
anime catalog database.
"""

from collections.abc import Callable, Generator
from typing import Any

import pytest
from anime_dedup.repository import (
    ANIME,
    CUSTOM_LISTS,
    REVIEWS,
    WATCHLIST,
    SqlAlchemyRepository,
    create_repository,
)
from common.config.dedup_config import DedupConfig
from common.models.anime import AnimeRecord, CustomList, Review, WatchlistEntry


@pytest.fixture
def dedup_config() -> DedupConfig:
    """Default matching thresholds."""
    return DedupConfig()


@pytest.fixture
def repository() -> Generator[SqlAlchemyRepository, None, None]:
    """
    Fresh in-memory SQLite repository with the full schema.

    Each test gets its own engine, so stored state never leaks between tests.
    """
    repo = create_repository("sqlite:///:memory:")
    yield repo
    repo.dispose()


@pytest.fixture
def add_anime(repository: SqlAlchemyRepository) -> Callable[..., str]:
    """Insert a validated anime record and return its identity."""

    def _add(**fields: Any) -> str:
        record = AnimeRecord(**fields)
        return repository.insert(ANIME, record.model_dump(mode="json"))

    return _add


@pytest.fixture
def add_watchlist(repository: SqlAlchemyRepository) -> Callable[..., str]:
    def _add(**fields: Any) -> str:
        return repository.insert(WATCHLIST, WatchlistEntry(**fields).model_dump())

    return _add


@pytest.fixture
def add_review(repository: SqlAlchemyRepository) -> Callable[..., str]:
    def _add(**fields: Any) -> str:
        return repository.insert(REVIEWS, Review(**fields).model_dump())

    return _add


@pytest.fixture
def add_custom_list(repository: SqlAlchemyRepository) -> Callable[..., str]:
    def _add(**fields: Any) -> str:
        return repository.insert(CUSTOM_LISTS, CustomList(**fields).model_dump())

    return _add
