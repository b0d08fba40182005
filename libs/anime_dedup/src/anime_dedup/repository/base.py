"""Abstract document repository used by the merge and rollback components."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Any

from common.models.anime import AnimeRecord

from ..matching.titles import normalize_title

ANIME = "anime"
WATCHLIST = "watchlist"
REVIEWS = "reviews"
CUSTOM_LISTS = "custom_lists"
MERGE_BATCHES = "merge_batches"

Document = dict[str, Any]


class DocumentRepository(ABC):
    """Narrow per-collection storage interface.

    Documents are plain dicts keyed by field name with an ``id`` entry. All
    implementations must make the operations issued inside ``transaction()``
    commit or roll back together.
    """

    # ==================== Transactions ====================

    @abstractmethod
    def transaction(self) -> AbstractContextManager[None]:
        """Run the enclosed operations as one atomic unit.

        Nested calls join the outermost transaction.
        """
        pass

    # ==================== Reads ====================

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Document | None:
        """Return one document by identity, or None."""
        pass

    @abstractmethod
    def list_all(self, collection: str) -> list[Document]:
        """Return every document of a collection ordered by identity."""
        pass

    @abstractmethod
    def query(self, collection: str, **equals: Any) -> list[Document]:
        """Return documents whose fields equal all given values."""
        pass

    @abstractmethod
    def query_contains(self, collection: str, field: str, value: Any) -> list[Document]:
        """Return documents whose list-valued ``field`` contains ``value``."""
        pass

    @abstractmethod
    def count(self, collection: str) -> int:
        """Number of documents in a collection."""
        pass

    # ==================== Writes ====================

    @abstractmethod
    def insert(self, collection: str, doc: Document) -> str:
        """Insert a document, keeping its ``id`` when given. Returns the identity."""
        pass

    @abstractmethod
    def patch(self, collection: str, doc_id: str, fields: Document) -> bool:
        """Update the given fields of one document. Returns False if it does not exist."""
        pass

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> bool:
        """Delete one document. Returns False if it did not exist."""
        pass

    # ==================== Lookups ====================

    def find_existing_anime(self, record: AnimeRecord) -> str | None:
        """Identity of a stored anime matching ``record``, if any.

        Checks MyAnimeList id, AniList id, then the normalized form of each
        title variant. Store errors propagate to the caller.
        """
        if record.my_anime_list_id is not None:
            found = self.query(ANIME, my_anime_list_id=record.my_anime_list_id)
            if found:
                return found[0]["id"]
        if record.anilist_id is not None:
            found = self.query(ANIME, anilist_id=record.anilist_id)
            if found:
                return found[0]["id"]
        for title in record.all_titles():
            normalized = normalize_title(title)
            if not normalized:
                continue
            found = self.query(ANIME, normalized_title=normalized)
            if found:
                return found[0]["id"]
        return None
