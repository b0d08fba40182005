"""Identity generation utilities using ULID and deterministic hashing.

This module provides standard functions for generating:
1. Unique Lexicographically Sortable Identifiers (ULID) for stored documents.
2. Deterministic SHA-256 IDs for documents that must keep the same identity
   across repeated runs (e.g. anime records re-created by a rollback).
"""

import hashlib
import time
from typing import Literal

from ulid import ULID

# Common document prefixes for easy identification
EntityType = Literal["anime", "watchlist", "review", "custom_list", "merge_batch"]

ENTITY_PREFIXES: dict[EntityType, str] = {
    "anime": "anime_",
    "watchlist": "wl_",
    "review": "rev_",
    "custom_list": "list_",
    "merge_batch": "mb_",
}


def generate_ulid(entity_type: EntityType) -> str:
    """Generate a new random, time-sortable ULID with entity prefix.

    Args:
        entity_type: The type of document (e.g. 'anime', 'review')

    Returns:
        Prefixed ULID string (e.g., 'anime_01ARZ3NDEKTSV4RRFFQ69G5FAV')
    """
    prefix = ENTITY_PREFIXES.get(entity_type, f"{entity_type}_")
    return f"{prefix}{ULID()}"


def generate_deterministic_id(seed: str, entity_type: EntityType | None = None) -> str:
    """Generate a deterministic ID based on a unique seed string.

    Args:
        seed: Unique string content to hash (e.g. "dedup:1700000000000:anime_01...")
        entity_type: Optional prefix to add to the hash

    Returns:
        Prefixed short hash (16 chars)
    """
    hash_object = hashlib.sha256(seed.encode("utf-8"))
    # 64 bits of entropy is plenty for restored documents
    short_hash = hash_object.hexdigest()[:16]

    if entity_type:
        prefix = ENTITY_PREFIXES.get(entity_type, f"{entity_type}_")
        return f"{prefix}{short_hash}"

    return short_hash


def generate_batch_id(prefix: str = "dedup", now_ms: int | None = None) -> str:
    """Generate a merge batch id of the form ``<prefix>:<epoch millis>``.

    Args:
        prefix: Batch id prefix from settings.
        now_ms: Optional fixed timestamp, used by tests.

    Returns:
        Batch id string.
    """
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    return f"{prefix}:{now_ms}"


def generate_restored_anime_id(batch_id: str, original_id: str) -> str:
    """Identity for an anime record re-inserted by rollback.

    Derived from the batch and the original identity so that restoring the
    same batch twice targets the same document.
    """
    return generate_deterministic_id(f"{batch_id}:{original_id}", "anime")
