"""Anime deduplication library: matching, grouping, merge and rollback."""

from anime_dedup.consolidation import consolidate_seasons, consolidate_series
from anime_dedup.contracts import (
    DeduplicationRunResult,
    DuplicateGroup,
    IngestionReport,
    MergeBatch,
    MergeResult,
    PreparedRecord,
    RestoreResult,
    SkippedRecord,
)
from anime_dedup.exceptions import (
    DeduplicationError,
    MergeError,
    RecordValidationError,
    RollbackError,
    StoreUnavailableError,
)
from anime_dedup.grouping import are_duplicate_anime, find_duplicate_groups
from anime_dedup.merge import MergeOrchestrator
from anime_dedup.pipeline import DeduplicationService
from anime_dedup.preprocessor import deduplicate_incoming, prepare_new_anime_for_insert
from anime_dedup.references import DEFAULT_REFERENCES, ForeignReference, MergePolicy
from anime_dedup.rollback import RollbackManager
from anime_dedup.scoring import calculate_entry_quality, select_primary_entry

__all__ = [
    "DEFAULT_REFERENCES",
    "DeduplicationError",
    "DeduplicationRunResult",
    "DeduplicationService",
    "DuplicateGroup",
    "ForeignReference",
    "IngestionReport",
    "MergeBatch",
    "MergeError",
    "MergeOrchestrator",
    "MergePolicy",
    "MergeResult",
    "PreparedRecord",
    "RecordValidationError",
    "RestoreResult",
    "RollbackError",
    "RollbackManager",
    "SkippedRecord",
    "StoreUnavailableError",
    "are_duplicate_anime",
    "calculate_entry_quality",
    "consolidate_seasons",
    "consolidate_series",
    "deduplicate_incoming",
    "find_duplicate_groups",
    "prepare_new_anime_for_insert",
    "select_primary_entry",
]
