"""Pure matching components: titles, seasons, similarity and identity keys."""

from .keys import (
    base_title_of,
    base_titles,
    external_ids,
    generate_anime_key,
    series_key_for,
)
from .titles import (
    SeasonInfo,
    core_tokens,
    extract_season_info,
    is_romanized_japanese,
    normalize_title,
    title_similarity,
)

__all__ = [
    "SeasonInfo",
    "base_title_of",
    "base_titles",
    "core_tokens",
    "external_ids",
    "extract_season_info",
    "generate_anime_key",
    "is_romanized_japanese",
    "normalize_title",
    "series_key_for",
    "title_similarity",
]
