"""Title normalization, romanization detection, season extraction and similarity.

Everything in this module is a pure function over strings. Malformed input
(punctuation-only titles, stray unicode) never raises; passing ``None`` where
a string is required is a caller bug and fails with ``TypeError``.
"""

import re
import unicodedata
from dataclasses import dataclass

from rapidfuzz.distance import Levenshtein

__all__ = [
    "SeasonInfo",
    "core_tokens",
    "extract_season_info",
    "is_romanized_japanese",
    "normalize_title",
    "title_similarity",
]

# Brackets of any width: (), [], full-width （）, 【】
_PARENTHETICAL = re.compile(r"[\(\[（【][^\)\]）】]*[\)\]）】]")
_NON_WORD = re.compile(r"[\W_]+")
_FORMAT_WORDS = re.compile(r"\b(?:tv|ova|ona|movie|special)\b")
_SEASON_MARKERS = re.compile(
    r"\b(?:"
    r"(?:the\s+)?final\s+season"
    r"|season\s*\d+"
    r"|\d+(?:st|nd|rd|th)\s+season"
    r"|s\d+"
    r"|part\s*(?:\d+|[ivx]+)"
    r"|cour\s*\d+"
    r")\b"
)
_WHITESPACE = re.compile(r"\s+")

_ROMAN_NUMERALS = {"i": 1, "ii": 2, "iii": 3, "iv": 4, "v": 5, "vi": 6, "vii": 7, "viii": 8, "ix": 9, "x": 10}

# Particles that rarely appear as standalone tokens in English titles.
# "to", "made" and "sa" are left out: "Back to the Future", "Made in Abyss".
_ROMANIZED_PARTICLES = frozenset(
    {"no", "wa", "ga", "wo", "ni", "de", "kara", "ya", "mo", "yo", "desu", "sama", "kun", "chan"}
)
_ROMANIZED_PATTERNS = (
    re.compile(r"\b(?:boku|ore|watashi|kimi|anata|omae)\b"),
    re.compile(r"-(?:kun|chan|sama|san|senpai)\b"),
    re.compile(r"shoujo|shounen|shonen|senpai|kouhai|monogatari|isekai"),
)

_CORE_STOPWORDS = frozenset(
    {
        "the", "a", "an", "of", "and", "or", "my", "your", "our", "his", "her", "their",
        "on", "in", "season", "part", "final", "shippuden", "shippuuden",
    }
) | _ROMANIZED_PARTICLES

# Subtitles that denote a sequel arc of the same base series.
# token -> (label, implied season number)
_CONTINUATION_LABELS: dict[str, tuple[str, int | None]] = {
    "shippuden": ("Shippuden", 2),
    "shippuuden": ("Shippuden", 2),
    "zoku": ("Zoku", 2),
    "final chapters": ("The Final Chapters", None),
}


@dataclass(frozen=True)
class SeasonInfo:
    """Split of a raw title into its series base and season marker."""

    base_title: str
    season: int | None = None
    label: str | None = None


def _normalize_once(text: str) -> str:
    text = unicodedata.normalize("NFKC", text).lower()
    text = text.replace("　", " ")
    text = _PARENTHETICAL.sub(" ", text)
    text = _NON_WORD.sub(" ", text)
    text = _FORMAT_WORDS.sub(" ", text)
    text = _SEASON_MARKERS.sub(" ", text)
    return _WHITESPACE.sub(" ", text).strip()


def normalize_title(raw: str) -> str:
    """Canonicalize a title for comparison.

    Lowercases, strips punctuation, parenthetical qualifiers, format words
    (tv, ova, movie ...) and season/part/cour markers, and collapses
    whitespace. The pass is repeated until it reaches a fixed point, so the
    function is idempotent even for inputs like ``"Part Part 2 2"``.

    Args:
        raw: Title as delivered by a catalog.

    Returns:
        Normalized title, possibly empty.

    Example:
        >>> normalize_title("Naruto: Shippuden (Season 2)!")
        'naruto shippuden'
    """
    if not isinstance(raw, str):
        raise TypeError(f"title must be a string, got {type(raw).__name__}")
    current = raw
    while True:
        nxt = _normalize_once(current)
        if nxt == current:
            return current
        current = nxt


def is_romanized_japanese(title: str | None) -> bool:
    """Heuristically flag romanized Japanese titles ("Boku no Hero Academia").

    Only a secondary signal for grouping; false positives are expected for
    English titles that happen to contain a particle-like token.
    """
    if not title:
        return False
    lowered = unicodedata.normalize("NFKC", title).lower()
    tokens = _NON_WORD.sub(" ", lowered).split()
    if any(token in _ROMANIZED_PARTICLES for token in tokens):
        return True
    return any(pattern.search(lowered) for pattern in _ROMANIZED_PATTERNS)


def _roman_or_int(value: str) -> int:
    value = value.lower()
    if value.isdigit():
        return int(value)
    return _ROMAN_NUMERALS.get(value, 0)


def extract_season_info(title: str) -> SeasonInfo:
    """Split a title into base title, season number and continuation label.

    Recognizes "Season 3", "3rd Season", "S3", "Part 2"/"Part II",
    "Cour 2", "Final Season" and a short table of sequel subtitles such as
    "Shippuden". Without any marker the base title equals
    ``normalize_title(title)`` and ``season`` is ``None``.
    """
    if not isinstance(title, str):
        raise TypeError(f"title must be a string, got {type(title).__name__}")

    season: int | None = None
    label: str | None = None
    cleaned = unicodedata.normalize("NFKC", title)

    match = re.search(r"season\s*(\d+)", cleaned, re.IGNORECASE)
    if match is None:
        match = re.search(r"\b(\d+)(?:st|nd|rd|th)\s+season\b", cleaned, re.IGNORECASE)
    if match is None:
        match = re.search(r"\bS(\d+)\b", cleaned, re.IGNORECASE)
    if match is not None:
        season = int(match.group(1))
        cleaned = cleaned[: match.start()] + " " + cleaned[match.end() :]

    match = re.search(r"\b(?:the\s+)?final\s+season\b", cleaned, re.IGNORECASE)
    if match is not None:
        label = "Final Season"
        cleaned = cleaned[: match.start()] + " " + cleaned[match.end() :]

    match = re.search(r"\bpart\s*(\d+|[ivx]+)\b", cleaned, re.IGNORECASE)
    if match is not None:
        part = _roman_or_int(match.group(1))
        label = f"{label} Part {part}" if label else f"Part {part}"
        # a part of the final season is not a season of its own
        if season is None and part and not label.startswith("Final Season"):
            season = part
        cleaned = cleaned[: match.start()] + " " + cleaned[match.end() :]

    match = re.search(r"\bcour\s*(\d+)\b", cleaned, re.IGNORECASE)
    if match is not None:
        label = label or f"Cour {match.group(1)}"
        cleaned = cleaned[: match.start()] + " " + cleaned[match.end() :]

    for token, (arc_label, implied_season) in _CONTINUATION_LABELS.items():
        match = re.search(rf"\b(?:the\s+)?{token}\b", cleaned, re.IGNORECASE)
        if match is not None:
            label = arc_label
            if season is None:
                season = implied_season
            cleaned = cleaned[: match.start()] + " " + cleaned[match.end() :]
            break

    return SeasonInfo(base_title=normalize_title(cleaned), season=season, label=label)


def core_tokens(title: str) -> set[str]:
    """Content tokens of a title: no particles, articles, season words or bare numbers."""
    return {
        token
        for token in normalize_title(title).split()
        if token not in _CORE_STOPWORDS and not token.isdigit()
    }


def title_similarity(a: str, b: str) -> float:
    """Bounded [0, 1] similarity between two titles.

    Normalized Levenshtein similarity over the normalized titles. Equal
    normalized titles (including two empty ones) score exactly 1.0; any other
    pair scores strictly below 1.0. Symmetric.
    """
    s1 = normalize_title(a)
    s2 = normalize_title(b)
    if s1 == s2:
        return 1.0
    if not s1 or not s2:
        return 0.0
    return float(Levenshtein.normalized_similarity(s1, s2))
