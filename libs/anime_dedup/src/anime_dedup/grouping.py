"""Partition anime records into duplicate groups.

Pairwise duplicate edges come from four signals, strongest first:

1. a shared external catalog id (authoritative);
2. a shared series base title;
3. near-identical titles (typo-level similarity);
4. the romanization bridge: same release year and exactly one of the two
   titles romanized, e.g. "Boku no Hero Academia" / "My Hero Academia".

Signals 2-4 only apply when at least one record lacks external ids: two
records that both carry catalog ids are the same title exactly when an id
matches. Titles that normalize to nothing never produce an edge. Groups are
the transitive closure of the edges.
"""

import logging
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass

from common.config.dedup_config import DedupConfig
from common.models.anime import AnimeRecord
from rapidfuzz import process
from rapidfuzz.distance import Levenshtein

from .contracts import DuplicateGroup
from .matching.keys import base_titles, external_ids, generate_anime_key
from .matching.titles import core_tokens, is_romanized_japanese, normalize_title
from .scoring import select_primary_entry

logger = logging.getLogger(__name__)

__all__ = [
    "are_duplicate_anime",
    "find_duplicate_groups",
    "partition_records",
    "romanization_bridge",
]


@dataclass(frozen=True)
class _Features:
    """Matching inputs of one record, computed once per record."""

    ids: frozenset[str]
    bases: frozenset[str]
    titles: tuple[str, ...]
    romanized: bool
    tokens: frozenset[str]
    year: int | None


def _features(record: AnimeRecord) -> _Features:
    titles: list[str] = []
    for title in record.all_titles():
        normalized = normalize_title(title)
        if normalized and normalized not in titles:
            titles.append(normalized)
    return _Features(
        ids=frozenset(external_ids(record)),
        bases=frozenset(base_titles(record)),
        titles=tuple(titles),
        romanized=is_romanized_japanese(record.title),
        tokens=frozenset(core_tokens(record.title)),
        year=record.year,
    )


def _bridged(a: _Features, b: _Features, min_overlap: float) -> bool:
    if a.year is None or b.year is None or a.year != b.year:
        return False
    if a.romanized == b.romanized:
        return False
    if min_overlap <= 0:
        return True
    union = a.tokens | b.tokens
    if not union:
        return False
    return len(a.tokens & b.tokens) / len(union) >= min_overlap


def _linked(a: _Features, b: _Features, config: DedupConfig) -> bool:
    if a.ids & b.ids:
        return True
    if a.ids and b.ids:
        return False
    if a.bases & b.bases:
        return True
    for title_a in a.titles:
        for title_b in b.titles:
            score = Levenshtein.normalized_similarity(
                title_a, title_b, score_cutoff=config.similarity_threshold
            )
            if score >= config.similarity_threshold:
                return True
    return _bridged(a, b, config.romanization_bridge_min_overlap)


def romanization_bridge(
    a: AnimeRecord, b: AnimeRecord, min_overlap: float = 0.0
) -> bool:
    """Same-year romanized/localized title pair heuristic.

    True when both years are known and equal and exactly one of the two
    titles looks romanized. With ``min_overlap`` > 0 the content tokens of the
    two titles must also overlap by at least that Jaccard ratio.
    """
    return _bridged(_features(a), _features(b), min_overlap)


def are_duplicate_anime(
    a: AnimeRecord, b: AnimeRecord, config: DedupConfig | None = None
) -> bool:
    """Decide whether two records denote the same title."""
    return _linked(_features(a), _features(b), config or DedupConfig())


def _order_key(record: AnimeRecord) -> tuple:
    return (
        record.id is None,
        record.id or "",
        generate_anime_key(record),
        normalize_title(record.title),
        record.title,
        record.year if record.year is not None else -1,
    )


class _UnionFind:
    def __init__(self, size: int) -> None:
        self.parent = list(range(size))

    def find(self, i: int) -> int:
        while self.parent[i] != i:
            self.parent[i] = self.parent[self.parent[i]]
            i = self.parent[i]
        return i

    def union(self, i: int, j: int) -> None:
        root_i, root_j = self.find(i), self.find(j)
        if root_i != root_j:
            self.parent[max(root_i, root_j)] = min(root_i, root_j)


def _union_shared(
    sets: _UnionFind,
    buckets: dict[str, list[int]],
    features: list[_Features],
    *,
    authoritative: bool,
) -> None:
    for members in buckets.values():
        if authoritative:
            for index in members[1:]:
                sets.union(members[0], index)
            continue
        # a shared title links every pair in which at least one side has no ids
        anchor = next((i for i in members if not features[i].ids), None)
        if anchor is None:
            continue
        for index in members:
            sets.union(anchor, index)


def _union_bridged_year(
    sets: _UnionFind, members: list[int], features: list[_Features]
) -> None:
    """Unguarded bridge within one release year, in linear time.

    An id-less record on one side of the romanization split is linked to
    every record on the other side, so it and that whole side form one
    component.
    """
    romanized = [i for i in members if features[i].romanized]
    localized = [i for i in members if not features[i].romanized]
    for side, other_side in ((romanized, localized), (localized, romanized)):
        anchors = [i for i in side if not features[i].ids]
        if not anchors or not other_side:
            continue
        for index in [*anchors, *other_side]:
            sets.union(other_side[0], index)


def partition_records(
    records: Sequence[AnimeRecord], config: DedupConfig | None = None
) -> list[list[AnimeRecord]]:
    """Split records into connected components of the duplicate relation.

    Singletons are included. Both the members of each component and the
    components themselves are sorted by identity, so the result does not
    depend on input order.

    Features are computed once per record. Shared ids, base titles and
    normalized titles are joined through dictionaries; only the fuzzy title
    and romanization checks compare records pairwise, and only pairs in which
    one record lacks external ids are considered.
    """
    config = config or DedupConfig()
    ordered = sorted(records, key=_order_key)
    features = [_features(record) for record in ordered]
    sets = _UnionFind(len(ordered))

    by_id: dict[str, list[int]] = defaultdict(list)
    by_base: dict[str, list[int]] = defaultdict(list)
    by_title: dict[str, list[int]] = defaultdict(list)
    by_year: dict[int, list[int]] = defaultdict(list)
    for index, feature in enumerate(features):
        for key in feature.ids:
            by_id[key].append(index)
        for base in feature.bases:
            by_base[base].append(index)
        for title in feature.titles:
            by_title[title].append(index)
        if feature.year is not None:
            by_year[feature.year].append(index)

    _union_shared(sets, by_id, features, authoritative=True)
    _union_shared(sets, by_base, features, authoritative=False)
    _union_shared(sets, by_title, features, authoritative=False)

    # typo-level similarity between distinct normalized titles
    choices = list(by_title)
    for title, owners in by_title.items():
        if all(features[i].ids for i in owners):
            continue
        matches = process.extract(
            title,
            choices,
            scorer=Levenshtein.normalized_similarity,
            score_cutoff=config.similarity_threshold,
            limit=None,
        )
        for other, _score, _position in matches:
            for i in owners:
                for j in by_title[other]:
                    if features[i].ids and features[j].ids:
                        continue
                    sets.union(i, j)

    min_overlap = config.romanization_bridge_min_overlap
    for members in by_year.values():
        if min_overlap <= 0:
            _union_bridged_year(sets, members, features)
            continue
        for position, i in enumerate(members):
            for j in members[position + 1 :]:
                if features[i].ids and features[j].ids:
                    continue
                if sets.find(i) == sets.find(j):
                    continue
                if _bridged(features[i], features[j], min_overlap):
                    sets.union(i, j)

    components: dict[int, list[AnimeRecord]] = {}
    for index, record in enumerate(ordered):
        components.setdefault(sets.find(index), []).append(record)
    return [components[root] for root in sorted(components)]


def find_duplicate_groups(
    records: Sequence[AnimeRecord], config: DedupConfig | None = None
) -> list[DuplicateGroup]:
    """Find every group of two or more records that denote one title.

    Args:
        records: Full catalog or an incoming batch.
        config: Matching thresholds; defaults to ``DedupConfig()``.

    Returns:
        Duplicate groups in deterministic order.
    """
    config = config or DedupConfig()
    groups: list[DuplicateGroup] = []
    for component in partition_records(records, config):
        if len(component) < 2:
            continue
        primary = select_primary_entry(component, config.placeholder_poster_markers)
        group = DuplicateGroup(key=generate_anime_key(primary), records=component)
        logger.debug(f"Duplicate group {group.key}: {' | '.join(group.titles)}")
        groups.append(group)
    logger.info(f"Found {len(groups)} duplicate groups among {len(records)} records")
    return groups
