"""Metadata quality scoring, primary selection and display-title choice."""

from collections.abc import Sequence

from common.models.anime import AnimeRecord

from .matching.titles import is_romanized_japanese, normalize_title

__all__ = [
    "DEFAULT_PLACEHOLDER_MARKERS",
    "calculate_entry_quality",
    "pick_preferred_title",
    "select_primary_entry",
]

DEFAULT_PLACEHOLDER_MARKERS: tuple[str, ...] = (
    "placeholder",
    "no_image",
    "noimage",
    "questionmark",
    "default.jpg",
)

# Weights
_DESCRIPTION = 10
_DESCRIPTION_LENGTH_MAX = 10  # one point per 100 characters, capped
_POSTER = 10
_REAL_POSTER = 5
_EXTERNAL_ID = 10
_BOTH_EXTERNAL_IDS = 5
_ENGLISH_TITLE = 20
_ALTERNATE_TITLES = 5
_GENRES = 5
_STUDIOS = 5
_YEAR = 5
_EPISODES = 5
_TOTAL_EPISODES = 5
_EPISODE_COMPLETENESS = 10


def _is_placeholder(url: str, markers: Sequence[str]) -> bool:
    lowered = url.lower()
    return any(marker in lowered for marker in markers)


def calculate_entry_quality(
    record: AnimeRecord,
    placeholder_markers: Sequence[str] = DEFAULT_PLACEHOLDER_MARKERS,
) -> int:
    """Score how complete and rich a record's metadata is.

    Every term is a non-negative reward for a populated field, so filling in
    a field never lowers the score.

    Args:
        record: Record to score.
        placeholder_markers: Substrings that identify placeholder posters.

    Returns:
        Non-negative integer score.
    """
    score = 0

    if record.description and record.description.strip():
        score += _DESCRIPTION
        score += min(len(record.description.strip()) // 100, _DESCRIPTION_LENGTH_MAX)

    if record.poster_url and record.poster_url.strip():
        score += _POSTER
        if not _is_placeholder(record.poster_url, placeholder_markers):
            score += _REAL_POSTER

    if record.my_anime_list_id is not None:
        score += _EXTERNAL_ID
    if record.anilist_id is not None:
        score += _EXTERNAL_ID
    if record.my_anime_list_id is not None and record.anilist_id is not None:
        score += _BOTH_EXTERNAL_IDS

    if record.title_english and record.title_english.strip():
        score += _ENGLISH_TITLE
    if any(t.strip() for t in record.alternate_titles):
        score += _ALTERNATE_TITLES

    if record.genres:
        score += _GENRES
    if record.studios:
        score += _STUDIOS
    if record.year is not None:
        score += _YEAR

    if record.episodes is not None:
        score += _EPISODES
    if record.total_episodes is not None:
        score += _TOTAL_EPISODES
        if record.episodes is not None and record.total_episodes > 0:
            ratio = min(record.episodes / record.total_episodes, 1.0)
            score += round(_EPISODE_COMPLETENESS * ratio)

    return score


def select_primary_entry(
    records: Sequence[AnimeRecord],
    placeholder_markers: Sequence[str] = DEFAULT_PLACEHOLDER_MARKERS,
) -> AnimeRecord:
    """Choose the record to keep when merging a duplicate group.

    Highest quality score wins; ties go to the record with an English title,
    then to the one carrying an AniList id, then to the lowest identity
    (input position for records not yet stored).

    Raises:
        ValueError: If ``records`` is empty.
    """
    if not records:
        raise ValueError("cannot select a primary entry from an empty group")

    def rank(indexed: tuple[int, AnimeRecord]) -> tuple:
        index, record = indexed
        return (
            -calculate_entry_quality(record, placeholder_markers),
            not bool(record.title_english),
            record.anilist_id is None,
            record.id is None,
            record.id or "",
            index,
        )

    return min(enumerate(records), key=rank)[1]


def pick_preferred_title(record: AnimeRecord) -> str:
    """Choose the display title for a record about to be inserted.

    Official English title first, then the shortest English-looking title,
    then the shortest romanized title, then the catalog title.
    """
    if record.title_english and not is_romanized_japanese(record.title_english):
        return record.title_english

    candidates = [t for t in (record.title, record.title_romaji, *record.alternate_titles) if t]
    englishish = [t for t in candidates if t.isascii() and any(c.isalpha() for c in t) and not is_romanized_japanese(t)]
    if englishish:
        return min(englishish, key=len)

    romanized = [t for t in candidates if is_romanized_japanese(t)]
    if romanized:
        return min(romanized, key=lambda t: len(normalize_title(t)))

    return record.title
