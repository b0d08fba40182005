"""Reverse merges from their stored snapshots."""

import logging
from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError

from common.utils.id_generation import generate_restored_anime_id

from .contracts import MergeBatch, RestoreResult
from .exceptions import DeduplicationError, RollbackError
from .references import DEFAULT_REFERENCES, ForeignReference
from .repository.base import ANIME, MERGE_BATCHES, Document, DocumentRepository

logger = logging.getLogger(__name__)


class RollbackManager:
    """Restores every merge recorded under one batch id.

    Restoring is idempotent: anime records that no longer exist are
    re-inserted under an identity derived from the batch and the original
    identity, so a second restore patches the same documents again.
    """

    def __init__(
        self,
        repository: DocumentRepository,
        references: Sequence[ForeignReference] = DEFAULT_REFERENCES,
    ):
        self.repository = repository
        self.references = {reference.collection: reference for reference in references}

    def restore_batch(self, batch_id: str) -> RestoreResult:
        """Restore the pre-merge state of every group merged under ``batch_id``.

        An unknown batch id restores nothing and is not an error.

        Raises:
            RollbackError: If the snapshots cannot be applied; nothing was written.
        """
        try:
            with self.repository.transaction():
                rows = self.repository.query(MERGE_BATCHES, batch_id=batch_id)
                if not rows:
                    logger.info(f"No merge snapshots for batch {batch_id}, nothing to restore")
                    return RestoreResult(batch_id=batch_id, restored_count=0)

                batches = sorted(
                    (MergeBatch.model_validate(row) for row in rows),
                    key=lambda batch: (batch.created_at, batch.id or ""),
                    reverse=True,
                )

                id_map: dict[str, str] = {}
                for batch in batches:
                    self._restore_anime(batch, id_map)
                for batch in batches:
                    self._restore_references(batch, id_map)

        except DeduplicationError:
            raise
        except ValidationError as e:
            raise RollbackError(f"Merge snapshots for batch {batch_id} are invalid: {e}") from e
        except Exception as e:
            logger.exception(f"Restore of batch {batch_id} failed, rolled back")
            raise RollbackError(f"Failed to restore batch {batch_id}: {e}") from e

        remapped = sum(1 for old, new in id_map.items() if old != new)
        logger.info(
            f"Restored {len(batches)} merge snapshot(s) for batch {batch_id} "
            f"({len(id_map)} anime records, {remapped} under new identities)"
        )
        return RestoreResult(batch_id=batch_id, restored_count=len(batches), id_map=id_map)

    def _restore_anime(self, batch: MergeBatch, id_map: dict[str, str]) -> None:
        for snapshot in batch.anime_snapshots:
            original_id = snapshot["id"]
            if self.repository.get(ANIME, original_id) is not None:
                self.repository.patch(ANIME, original_id, snapshot)
                id_map[original_id] = original_id
                continue

            restored_id = generate_restored_anime_id(batch.batch_id, original_id)
            if self.repository.get(ANIME, restored_id) is not None:
                self.repository.patch(ANIME, restored_id, snapshot)
            else:
                self.repository.insert(ANIME, {**snapshot, "id": restored_id})
            id_map[original_id] = restored_id

    def _restore_references(self, batch: MergeBatch, id_map: dict[str, str]) -> None:
        for collection, snapshots in batch.reference_snapshots.items():
            reference = self.references.get(collection)
            if reference is None:
                raise RollbackError(
                    f"Batch {batch.batch_id} holds snapshots of unregistered collection '{collection}'"
                )
            for snapshot in snapshots:
                doc = self._remap(snapshot, reference.foreign_key_field, id_map)
                if self.repository.get(collection, doc["id"]) is not None:
                    self.repository.patch(collection, doc["id"], doc)
                else:
                    self.repository.insert(collection, doc)

    @staticmethod
    def _remap(snapshot: Document, field: str, id_map: dict[str, str]) -> Document:
        value: Any = snapshot.get(field)
        if isinstance(value, list):
            value = [id_map.get(anime_id, anime_id) for anime_id in value]
        elif isinstance(value, str):
            value = id_map.get(value, value)
        return {**snapshot, field: value}
