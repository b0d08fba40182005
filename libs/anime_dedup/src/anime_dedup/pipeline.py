"""High-level deduplication jobs over the stored catalog."""

import logging
from collections.abc import Sequence
from typing import Any

from common.config.dedup_config import DedupConfig
from common.models.anime import AnimeRecord
from common.utils.id_generation import generate_batch_id

from .contracts import (
    DeduplicationRunResult,
    DuplicateGroup,
    IngestionReport,
    MergeResult,
    RestoreResult,
)
from .exceptions import DeduplicationError, RecordValidationError
from .grouping import find_duplicate_groups
from .merge import MergeOrchestrator, record_from_document
from .preprocessor import prepare_new_anime_for_insert
from .references import DEFAULT_REFERENCES, ForeignReference
from .repository.base import ANIME, DocumentRepository
from .rollback import RollbackManager
from .scoring import select_primary_entry

logger = logging.getLogger(__name__)


class DeduplicationService:
    """Entry point for catalog cleanup, rollback and ingestion preparation.

    Jobs are synchronous and process duplicate groups strictly one after
    another, each group in its own transaction.
    """

    def __init__(
        self,
        repository: DocumentRepository,
        config: DedupConfig | None = None,
        references: Sequence[ForeignReference] = DEFAULT_REFERENCES,
    ):
        self.repository = repository
        self.config = config or DedupConfig()
        self.merger = MergeOrchestrator(repository, references, self.config)
        self.rollback = RollbackManager(repository, references)

    def load_records(self) -> list[AnimeRecord]:
        """All stored anime records; invalid documents are skipped with a warning."""
        records: list[AnimeRecord] = []
        for doc in self.repository.list_all(ANIME):
            try:
                records.append(record_from_document(doc))
            except RecordValidationError as e:
                logger.warning(f"Skipping stored anime document: {e}")
        return records

    def find_groups(self, limit: int | None = None) -> list[DuplicateGroup]:
        """Current duplicate groups of the store, optionally the first ``limit``."""
        groups = find_duplicate_groups(self.load_records(), self.config)
        return groups if limit is None else groups[:limit]

    def run_deduplication(
        self,
        dry_run: bool = False,
        limit_groups: int | None = None,
        batch_id: str | None = None,
    ) -> DeduplicationRunResult:
        """Find and merge every duplicate group of the store.

        Args:
            dry_run: Identify and report groups without writing anything.
            limit_groups: Process only the first N groups.
            batch_id: Batch id to record merges under; generated when omitted.

        Returns:
            DeduplicationRunResult with one MergeResult per processed group.
        """
        batch_id = batch_id or generate_batch_id(self.config.batch_id_prefix)
        groups = self.find_groups()
        selected = groups if limit_groups is None else groups[:limit_groups]
        logger.info(
            f"Deduplication run {batch_id}: {len(groups)} groups found, "
            f"processing {len(selected)} (dry_run={dry_run})"
        )

        results: list[MergeResult] = []
        for group in selected:
            logger.info(f"Group {group.key}: {' | '.join(group.titles)}")
            if dry_run:
                primary = select_primary_entry(group.records, self.config.placeholder_poster_markers)
                results.append(
                    MergeResult(
                        primary_id=primary.id,
                        deleted_ids=[i for i in group.member_ids if i != primary.id],
                        group_size=len(group.records),
                    )
                )
                continue

            try:
                results.append(self.merger.process_duplicate_group(batch_id, group.member_ids))
            except DeduplicationError as e:
                logger.error(f"Group {group.key} failed and was rolled back: {e}")
                results.append(MergeResult(group_size=len(group.records), error=str(e)))

        merged = sum(1 for result in results if result.deleted_ids and not result.error)
        run = DeduplicationRunResult(
            batch_id=batch_id,
            groups_examined=len(groups),
            groups_processed=len(selected),
            changes_applied=not dry_run and merged > 0,
            results=results,
        )
        logger.info(
            f"Deduplication run {batch_id} finished: {merged} merged, {run.failed} failed"
        )
        return run

    def restore_batch(self, batch_id: str) -> RestoreResult:
        return self.rollback.restore_batch(batch_id)

    def prepare_incoming(self, items: Sequence[Any]) -> IngestionReport:
        """Run the ingestion preprocessor with the store as the existing-record lookup."""
        return prepare_new_anime_for_insert(
            items, self.repository.find_existing_anime, self.config
        )
