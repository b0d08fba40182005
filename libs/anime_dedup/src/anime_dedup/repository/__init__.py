from .base import (
    ANIME,
    CUSTOM_LISTS,
    MERGE_BATCHES,
    REVIEWS,
    WATCHLIST,
    Document,
    DocumentRepository,
)
from .sqlalchemy_repository import SqlAlchemyRepository, create_repository

__all__ = [
    "ANIME",
    "CUSTOM_LISTS",
    "MERGE_BATCHES",
    "REVIEWS",
    "WATCHLIST",
    "Document",
    "DocumentRepository",
    "SqlAlchemyRepository",
    "create_repository",
]
