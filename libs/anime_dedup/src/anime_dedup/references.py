"""Registry of collections that reference anime records, and how to repoint them.

Each ``ForeignReference`` names a collection, the field holding the anime
identity and a merge policy. The merge orchestrator and the rollback manager
iterate the registry, so a new referencing collection needs one entry here
and no new code path.
"""

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from common.models.anime import WatchStatus

from .repository.base import (
    CUSTOM_LISTS,
    REVIEWS,
    WATCHLIST,
    Document,
    DocumentRepository,
)

logger = logging.getLogger(__name__)

EntryMerger = Callable[[Document, Document], Document]


class MergePolicy(str, Enum):
    """How a referencing document is folded onto the primary record."""

    SINGLETON = "singleton"  # one entry per owner per anime
    MULTIPLICITY = "multiplicity"  # one entry per owner per anime, most recent wins
    MEMBERSHIP = "membership"  # list of anime ids


@dataclass(frozen=True)
class ForeignReference:
    """One referencing collection."""

    collection: str
    foreign_key_field: str
    policy: MergePolicy
    owner_field: str = "user_id"
    merge_entries: EntryMerger | None = None
    recency_fields: tuple[str, ...] = ("updated_at", "created_at")


def merge_watchlist_entries(keep: Document, other: Document) -> Document:
    """Field-by-field merge of two watchlist entries of one user.

    Returns the fields to write onto ``keep``.
    """
    completed = WatchStatus.COMPLETED.value
    if completed in (keep.get("status"), other.get("status")):
        status = completed
    else:
        status = keep.get("status") or other.get("status")

    progress_values = [p for p in (keep.get("progress"), other.get("progress")) if p is not None]
    progress = max(progress_values) if progress_values else None

    user_rating = keep.get("user_rating")
    if user_rating is None:
        user_rating = other.get("user_rating")

    notes_parts: list[str] = []
    for note in (keep.get("notes"), other.get("notes")):
        if note and note.strip() and note.strip() not in notes_parts:
            notes_parts.append(note.strip())
    notes = " | ".join(notes_parts) if notes_parts else None

    return {
        "status": status,
        "progress": progress,
        "user_rating": user_rating,
        "notes": notes,
    }


DEFAULT_REFERENCES: tuple[ForeignReference, ...] = (
    ForeignReference(
        collection=WATCHLIST,
        foreign_key_field="anime_id",
        policy=MergePolicy.SINGLETON,
        merge_entries=merge_watchlist_entries,
    ),
    ForeignReference(
        collection=REVIEWS,
        foreign_key_field="anime_id",
        policy=MergePolicy.MULTIPLICITY,
    ),
    ForeignReference(
        collection=CUSTOM_LISTS,
        foreign_key_field="anime_ids",
        policy=MergePolicy.MEMBERSHIP,
    ),
)


def _recency(doc: Document, fields: Sequence[str]) -> datetime:
    for name in fields:
        value = doc.get(name)
        if isinstance(value, str):
            value = datetime.fromisoformat(value)
        if isinstance(value, datetime):
            # compare naive and aware values on one axis
            return value.replace(tzinfo=None)
    return datetime.min


def find_referencing(
    repository: DocumentRepository, reference: ForeignReference, anime_ids: Iterable[str]
) -> list[Document]:
    """Every document of ``reference.collection`` pointing at any of ``anime_ids``."""
    found: dict[str, Document] = {}
    for anime_id in anime_ids:
        if reference.policy is MergePolicy.MEMBERSHIP:
            docs = repository.query_contains(
                reference.collection, reference.foreign_key_field, anime_id
            )
        else:
            docs = repository.query(
                reference.collection, **{reference.foreign_key_field: anime_id}
            )
        for doc in docs:
            found.setdefault(doc["id"], doc)
    return [found[doc_id] for doc_id in sorted(found)]


def _repoint_owned(
    repository: DocumentRepository,
    reference: ForeignReference,
    primary_id: str,
    duplicate_ids: Sequence[str],
) -> int:
    fk = reference.foreign_key_field
    changed = 0
    for duplicate_id in duplicate_ids:
        for doc in repository.query(reference.collection, **{fk: duplicate_id}):
            owner = doc.get(reference.owner_field)
            existing = repository.query(
                reference.collection, **{fk: primary_id, reference.owner_field: owner}
            )
            if not existing:
                repository.patch(reference.collection, doc["id"], {fk: primary_id})
                changed += 1
                continue

            keep = existing[0]
            if reference.policy is MergePolicy.SINGLETON:
                if reference.merge_entries is not None:
                    repository.patch(
                        reference.collection, keep["id"], reference.merge_entries(keep, doc)
                    )
                repository.delete(reference.collection, doc["id"])
            elif _recency(keep, reference.recency_fields) >= _recency(
                doc, reference.recency_fields
            ):
                repository.delete(reference.collection, doc["id"])
            else:
                repository.delete(reference.collection, keep["id"])
                repository.patch(reference.collection, doc["id"], {fk: primary_id})
            changed += 1
    return changed


def _repoint_membership(
    repository: DocumentRepository,
    reference: ForeignReference,
    primary_id: str,
    duplicate_ids: Sequence[str],
) -> int:
    fk = reference.foreign_key_field
    superseded = set(duplicate_ids)
    changed = 0
    for doc in find_referencing(repository, reference, duplicate_ids):
        members: list[str] = []
        for anime_id in doc.get(fk) or []:
            if anime_id in superseded:
                anime_id = primary_id
            if anime_id == primary_id and primary_id in members:
                continue
            members.append(anime_id)
        repository.patch(reference.collection, doc["id"], {fk: members})
        changed += 1
    return changed


def repoint_references(
    repository: DocumentRepository,
    reference: ForeignReference,
    primary_id: str,
    duplicate_ids: Sequence[str],
) -> int:
    """Move every reference to ``duplicate_ids`` onto ``primary_id``.

    Returns:
        Number of referencing documents touched.
    """
    if reference.policy is MergePolicy.MEMBERSHIP:
        changed = _repoint_membership(repository, reference, primary_id, duplicate_ids)
    else:
        changed = _repoint_owned(repository, reference, primary_id, duplicate_ids)
    logger.debug(f"Repointed {changed} {reference.collection} documents to {primary_id}")
    return changed
