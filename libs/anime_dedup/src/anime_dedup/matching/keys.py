"""Canonical identity keys for anime records."""

from common.models.anime import AnimeRecord

from .titles import extract_season_info

__all__ = [
    "base_title_of",
    "base_titles",
    "external_ids",
    "generate_anime_key",
    "series_key_for",
]


def _key_title(record: AnimeRecord) -> str:
    return record.title_english or record.title or record.title_romaji or ""


def base_title_of(record: AnimeRecord) -> str:
    """Series base title of the record's preferred key title."""
    return extract_season_info(_key_title(record)).base_title


def generate_anime_key(record: AnimeRecord) -> str:
    """Derive the canonical key of a record.

    Precedence: MyAnimeList id, AniList id, then ``t:<base title>`` so that
    every season of one series shares the title fallback key.

    Example:
        >>> generate_anime_key(AnimeRecord(title="X", mal_id=123))
        'mal:123'
        >>> generate_anime_key(AnimeRecord(title="Naruto Shippuden"))
        't:naruto'
    """
    if record.my_anime_list_id is not None:
        return f"mal:{record.my_anime_list_id}"
    if record.anilist_id is not None:
        return f"al:{record.anilist_id}"
    return f"t:{base_title_of(record)}"


def series_key_for(record: AnimeRecord) -> str:
    """Series identity written onto consolidated records."""
    return f"series:{base_title_of(record)}"


def external_ids(record: AnimeRecord) -> set[str]:
    """External catalog identities carried by the record, as key strings."""
    ids: set[str] = set()
    if record.my_anime_list_id is not None:
        ids.add(f"mal:{record.my_anime_list_id}")
    if record.anilist_id is not None:
        ids.add(f"al:{record.anilist_id}")
    return ids


def base_titles(record: AnimeRecord) -> set[str]:
    """Non-empty base titles of the primary, English and romaji titles."""
    titles = (record.title, record.title_english, record.title_romaji)
    return {
        base
        for base in (extract_season_info(t).base_title for t in titles if t)
        if base
    }
