"""Fold season records of one series into a single consolidated record."""

from collections.abc import Sequence

from common.models.anime import AnimeRecord, SeasonEntry

from .matching.keys import series_key_for
from .matching.titles import extract_season_info, normalize_title
from .scoring import DEFAULT_PLACEHOLDER_MARKERS, select_primary_entry

__all__ = ["consolidate_seasons", "consolidate_series", "season_entry_for"]


def season_entry_for(record: AnimeRecord) -> SeasonEntry:
    """Summarize one record as a season of its series."""
    info = extract_season_info(record.title)
    return SeasonEntry(
        anime_id=record.id,
        anilist_id=record.anilist_id,
        episodes=record.total_episodes if record.total_episodes is not None else record.episodes,
        label=info.label,
        my_anime_list_id=record.my_anime_list_id,
        season=info.season,
        title=record.title,
        year=record.year,
    )


def _entry_identity(entry: SeasonEntry) -> tuple:
    if entry.anime_id:
        return ("id", entry.anime_id)
    return (
        "content",
        normalize_title(entry.title),
        entry.season,
        entry.label,
        entry.year,
        entry.my_anime_list_id,
        entry.anilist_id,
    )


def _season_order(entry: SeasonEntry) -> tuple:
    # unnumbered (original) seasons first
    return (
        entry.season is not None,
        entry.season or 0,
        entry.year if entry.year is not None else 0,
        entry.title,
    )


def consolidate_seasons(
    records: Sequence[AnimeRecord],
    series_key: str | None = None,
    placeholder_markers: Sequence[str] = DEFAULT_PLACEHOLDER_MARKERS,
) -> AnimeRecord:
    """Merge season records of one series into the primary record.

    Each input contributes exactly one season entry, even when two inputs
    look alike. An input that is already consolidated contributes its
    existing entries instead, skipping any already present, so consolidating
    a consolidated record again changes nothing.

    Args:
        records: Records sharing one series.
        series_key: Series identity to write; derived from the primary when omitted.
        placeholder_markers: Passed through to primary selection.

    Returns:
        A copy of the primary record with ``consolidated``, ``series_key`` and
        ``seasons`` set.

    Raises:
        ValueError: If ``records`` is empty.
    """
    if not records:
        raise ValueError("cannot consolidate an empty set of records")

    primary = select_primary_entry(records, placeholder_markers)

    entries: list[SeasonEntry] = []
    seen: set[tuple] = set()
    for record in records:
        if not (record.consolidated and record.seasons):
            entry = season_entry_for(record)
            seen.add(_entry_identity(entry))
            entries.append(entry)
            continue
        # only carried-over entries are de-duplicated
        for entry in record.seasons:
            identity = _entry_identity(entry)
            if identity in seen:
                continue
            seen.add(identity)
            entries.append(entry)

    entries.sort(key=_season_order)
    return primary.model_copy(
        update={
            "consolidated": True,
            "series_key": series_key or primary.series_key or series_key_for(primary),
            "seasons": [entry.model_copy() for entry in entries],
        },
        deep=True,
    )


def consolidate_series(records: Sequence[AnimeRecord]) -> list[AnimeRecord]:
    """Consolidate every series in an arbitrary list of records.

    Records are partitioned by series key; partitions with more than one
    record collapse into one consolidated record, singletons pass through.
    Output order follows the first appearance of each series.
    """
    partitions: dict[str, list[AnimeRecord]] = {}
    for record in records:
        partitions.setdefault(series_key_for(record), []).append(record)

    result: list[AnimeRecord] = []
    for key, members in partitions.items():
        if len(members) == 1:
            result.append(members[0])
        else:
            result.append(consolidate_seasons(members, series_key=key))
    return result
