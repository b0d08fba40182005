"""Prepare a freshly fetched batch of catalog records for insertion.

The batch is validated, collapsed onto one record per title (season records
of one series are consolidated), and each survivor is cross-checked against
the store through an injected lookup so known titles are never inserted
twice.
"""

import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from common.config.dedup_config import DedupConfig
from common.models.anime import AnimeRecord

from .consolidation import consolidate_seasons
from .contracts import IngestionReport, PreparedRecord, SkippedRecord
from .grouping import partition_records
from .matching.keys import external_ids, series_key_for
from .matching.titles import extract_season_info
from .scoring import pick_preferred_title, select_primary_entry

logger = logging.getLogger(__name__)

ExistingLookup = Callable[[AnimeRecord], str | None]

__all__ = [
    "ExistingLookup",
    "deduplicate_incoming",
    "parse_raw_records",
    "prepare_new_anime_for_insert",
]

# Scalar fields copied onto the surviving record when it lacks them
_FILLABLE_FIELDS = (
    "anilist_id",
    "description",
    "episodes",
    "my_anime_list_id",
    "poster_url",
    "rating",
    "title_english",
    "title_romaji",
    "total_episodes",
    "type",
    "year",
)


def _describe_validation_error(error: ValidationError) -> str:
    for detail in error.errors():
        if detail["loc"] and detail["loc"][0] == "title":
            return "missing title" if detail["type"] == "missing" else f"invalid title: {detail['msg']}"
    return "; ".join(
        f"{'.'.join(str(part) for part in detail['loc']) or 'record'}: {detail['msg']}"
        for detail in error.errors()
    )


def parse_raw_records(items: Sequence[Any]) -> tuple[list[AnimeRecord], list[SkippedRecord]]:
    """Validate raw catalog payloads.

    Malformed items are skipped with a diagnostic instead of aborting the batch.

    Returns:
        Tuple of (valid records in input order, skipped item diagnostics).
    """
    records: list[AnimeRecord] = []
    skipped: list[SkippedRecord] = []
    for index, item in enumerate(items):
        if isinstance(item, AnimeRecord):
            records.append(item)
            continue
        if not isinstance(item, Mapping):
            reason = f"expected an object, got {type(item).__name__}"
        else:
            try:
                records.append(AnimeRecord.model_validate(dict(item)))
                continue
            except ValidationError as e:
                reason = _describe_validation_error(e)
        logger.warning(f"Skipping incoming record #{index}: {reason}")
        skipped.append(SkippedRecord(index=index, reason=reason))
    return records, skipped


def _compatible(a: AnimeRecord, b: AnimeRecord) -> bool:
    ids_a, ids_b = external_ids(a), external_ids(b)
    return bool(ids_a & ids_b) or not (ids_a and ids_b)


def _absorb(primary: AnimeRecord, other: AnimeRecord) -> AnimeRecord:
    """Fill gaps of ``primary`` from ``other`` and keep other's titles as alternates."""
    update: dict[str, Any] = {}
    for name in _FILLABLE_FIELDS:
        if getattr(primary, name) is None and getattr(other, name) is not None:
            update[name] = getattr(other, name)
    for name in ("genres", "studios"):
        if not getattr(primary, name) and getattr(other, name):
            update[name] = list(getattr(other, name))

    merged = primary.model_copy(update=update, deep=True)
    known = set(merged.all_titles())
    alternates = list(merged.alternate_titles)
    for title in other.all_titles():
        if title not in known:
            alternates.append(title)
            known.add(title)
    return merged.model_copy(update={"alternate_titles": alternates})


def _collapse_same_season(
    component: list[AnimeRecord], config: DedupConfig
) -> list[AnimeRecord]:
    buckets: list[list[AnimeRecord]] = []
    markers: list[tuple] = []
    for record in component:
        info = extract_season_info(record.title)
        marker = (info.season, info.label)
        for bucket, bucket_marker in zip(buckets, markers, strict=True):
            if bucket_marker == marker and all(_compatible(record, m) for m in bucket):
                bucket.append(record)
                break
        else:
            buckets.append([record])
            markers.append(marker)

    collapsed: list[AnimeRecord] = []
    for bucket in buckets:
        survivor = select_primary_entry(bucket, config.placeholder_poster_markers)
        for other in bucket:
            if other is not survivor:
                survivor = _absorb(survivor, other)
        collapsed.append(survivor)
    return collapsed


def deduplicate_incoming(
    records: Sequence[AnimeRecord], config: DedupConfig | None = None
) -> list[AnimeRecord]:
    """Collapse intra-batch duplicates.

    Records judged to be one title collapse into the best of them; distinct
    seasons of one series fold into a single consolidated record.
    """
    config = config or DedupConfig()
    result: list[AnimeRecord] = []
    for component in partition_records(records, config):
        collapsed = _collapse_same_season(component, config)
        if len(collapsed) == 1:
            result.append(collapsed[0])
        else:
            result.append(
                consolidate_seasons(
                    collapsed, placeholder_markers=config.placeholder_poster_markers
                )
            )
    if len(result) != len(records):
        logger.info(f"Collapsed {len(records)} incoming records into {len(result)} candidates")
    return result


def _finalize_for_insert(record: AnimeRecord) -> AnimeRecord:
    update: dict[str, Any] = {"series_key": record.series_key or series_key_for(record)}
    preferred = pick_preferred_title(record)
    if preferred != record.title:
        alternates = [title for title in record.alternate_titles if title != preferred]
        if record.title not in alternates:
            alternates.insert(0, record.title)
        update["title"] = preferred
        update["alternate_titles"] = alternates
    return record.model_copy(update=update)


def prepare_new_anime_for_insert(
    items: Sequence[Any],
    lookup: ExistingLookup,
    config: DedupConfig | None = None,
) -> IngestionReport:
    """Turn a fetched batch into records tagged for insertion or matched to the store.

    Args:
        items: Raw catalog payloads (dicts) or already validated records.
        lookup: Returns the identity of a stored record matching a candidate,
            e.g. ``DocumentRepository.find_existing_anime``. Its errors
            propagate to the caller.
        config: Matching thresholds.

    Returns:
        IngestionReport with prepared candidates and skipped items.
    """
    config = config or DedupConfig()
    records, skipped = parse_raw_records(items)

    prepared: list[PreparedRecord] = []
    for candidate in deduplicate_incoming(records, config):
        existing_id = lookup(candidate)
        if existing_id:
            logger.debug(f"Incoming {candidate.title!r} already stored as {existing_id}")
            prepared.append(
                PreparedRecord(record=candidate, action="existing", existing_id=existing_id)
            )
        else:
            prepared.append(PreparedRecord(record=_finalize_for_insert(candidate), action="insert"))

    inserts = sum(1 for item in prepared if item.action == "insert")
    logger.info(
        f"Prepared {len(prepared)} candidates ({inserts} new, "
        f"{len(prepared) - inserts} existing, {len(skipped)} skipped)"
    )
    return IngestionReport(prepared=prepared, skipped=skipped)
