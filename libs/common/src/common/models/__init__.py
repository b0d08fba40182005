"""Domain models shared across packages."""

from .anime import (
    AnimeRecord,
    AnimeType,
    CustomList,
    Review,
    SeasonEntry,
    WatchlistEntry,
    WatchStatus,
)

__all__ = [
    "AnimeRecord",
    "AnimeType",
    "CustomList",
    "Review",
    "SeasonEntry",
    "WatchStatus",
    "WatchlistEntry",
]
