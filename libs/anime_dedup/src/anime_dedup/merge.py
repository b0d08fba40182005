"""Merge one duplicate group into its primary record, atomically and reversibly."""

import logging
from collections.abc import Sequence
from datetime import UTC, datetime

from pydantic import TypeAdapter, ValidationError

from common.config.dedup_config import DedupConfig
from common.models.anime import AnimeRecord

from .consolidation import consolidate_seasons
from .contracts import MergeBatch, MergeResult
from .exceptions import DeduplicationError, MergeError, RecordValidationError
from .matching.keys import generate_anime_key
from .references import DEFAULT_REFERENCES, ForeignReference, find_referencing, repoint_references
from .repository.base import ANIME, MERGE_BATCHES, Document, DocumentRepository
from .scoring import select_primary_entry

logger = logging.getLogger(__name__)
_DOCUMENTS = TypeAdapter(list[Document])


def record_from_document(doc: Document) -> AnimeRecord:
    """Validate a stored anime document.

    Raises:
        RecordValidationError: If the document does not describe a valid record.
    """
    try:
        return AnimeRecord.model_validate(doc)
    except ValidationError as e:
        raise RecordValidationError(
            f"Stored anime document {doc.get('id')!r} is invalid: {e}"
        ) from e


class MergeOrchestrator:
    """Snapshots, consolidates, repoints and deletes one duplicate group.

    Every step of a group merge runs inside one repository transaction, so a
    failure leaves the store exactly as it was before the group was touched.
    """

    def __init__(
        self,
        repository: DocumentRepository,
        references: Sequence[ForeignReference] = DEFAULT_REFERENCES,
        config: DedupConfig | None = None,
    ):
        self.repository = repository
        self.references = tuple(references)
        self.config = config or DedupConfig()

    def process_duplicate_group(self, batch_id: str, group_ids: Sequence[str]) -> MergeResult:
        """Merge the stored records ``group_ids`` under ``batch_id``.

        Members that no longer exist are ignored. When fewer than two members
        remain the group was already merged and a skipped result is returned.

        Raises:
            RecordValidationError: If a stored member is not a valid record.
            MergeError: If any other step fails; nothing was written.
        """
        member_ids = list(dict.fromkeys(group_ids))
        try:
            with self.repository.transaction():
                docs = [
                    doc
                    for doc in (self.repository.get(ANIME, anime_id) for anime_id in member_ids)
                    if doc is not None
                ]
                if len(docs) < 2:
                    logger.info(
                        f"Skipping group {member_ids}: {len(docs)} member(s) left, already merged"
                    )
                    return MergeResult(
                        primary_id=docs[0]["id"] if docs else None,
                        group_size=len(docs),
                        skipped=True,
                    )

                records = [record_from_document(doc) for doc in docs]
                primary = select_primary_entry(records, self.config.placeholder_poster_markers)
                duplicate_ids = [record.id for record in records if record.id != primary.id]
                present_ids = [doc["id"] for doc in docs]

                self._write_snapshot(batch_id, primary, duplicate_ids, docs, present_ids)

                consolidated = consolidate_seasons(
                    records, placeholder_markers=self.config.placeholder_poster_markers
                )
                self.repository.patch(
                    ANIME,
                    primary.id,
                    {
                        "consolidated": True,
                        "series_key": consolidated.series_key,
                        "seasons": [
                            entry.model_dump(mode="json") for entry in consolidated.seasons or []
                        ],
                    },
                )

                for reference in self.references:
                    repoint_references(self.repository, reference, primary.id, duplicate_ids)

                for duplicate_id in duplicate_ids:
                    self.repository.delete(ANIME, duplicate_id)

        except DeduplicationError:
            raise
        except Exception as e:
            logger.exception(f"Merge of group {member_ids} failed, rolled back")
            raise MergeError(f"Failed to merge group {member_ids}: {e}") from e

        logger.info(
            f"Merged {len(duplicate_ids)} duplicate(s) into {primary.id} ({primary.title!r})"
        )
        return MergeResult(
            primary_id=primary.id,
            deleted_ids=duplicate_ids,
            group_size=len(docs),
        )

    def _write_snapshot(
        self,
        batch_id: str,
        primary: AnimeRecord,
        duplicate_ids: list[str],
        docs: list[Document],
        member_ids: list[str],
    ) -> None:
        reference_snapshots = {
            reference.collection: _DOCUMENTS.dump_python(
                find_referencing(self.repository, reference, member_ids), mode="json"
            )
            for reference in self.references
        }
        batch = MergeBatch(
            batch_id=batch_id,
            group_key=generate_anime_key(primary),
            primary_id=primary.id,
            duplicate_ids=duplicate_ids,
            anime_snapshots=_DOCUMENTS.dump_python(docs, mode="json"),
            reference_snapshots=reference_snapshots,
            created_at=datetime.now(UTC),
        )
        self.repository.insert(MERGE_BATCHES, batch.model_dump(exclude={"id"}))
