"""Unit tests for the rollback manager."""

from datetime import UTC, datetime

import pytest
from anime_dedup.merge import MergeOrchestrator
from anime_dedup.repository import ANIME, CUSTOM_LISTS, MERGE_BATCHES, REVIEWS, WATCHLIST
from anime_dedup.rollback import RollbackManager
from common.utils.id_generation import generate_restored_anime_id

BATCH = "dedup:1700000000000"
COLLECTIONS = (ANIME, WATCHLIST, REVIEWS, CUSTOM_LISTS)


@pytest.fixture
def merged_store(repository, add_anime, add_watchlist, add_review, add_custom_list):
    """Store state after merging two Hero Academia records, with its pre-merge copy."""
    add_anime(
        id="anime_mha",
        title="My Hero Academia",
        title_english="My Hero Academia",
        my_anime_list_id=31964,
        year=2016,
    )
    add_anime(id="anime_boku", title="Boku no Hero Academia", year=2016)
    add_anime(id="anime_other", title="Monster", year=2004)
    add_watchlist(id="wl_1", user_id="u1", anime_id="anime_mha", status="Watching", progress=2)
    add_watchlist(id="wl_2", user_id="u1", anime_id="anime_boku", status="Completed", progress=13)
    add_review(id="rev_1", user_id="u2", anime_id="anime_boku", created_at=datetime(2024, 5, 1, tzinfo=UTC))
    add_custom_list(id="l1", user_id="u1", name="Faves", anime_ids=["anime_boku", "anime_other"])

    before = {c: repository.list_all(c) for c in COLLECTIONS}
    result = MergeOrchestrator(repository).process_duplicate_group(BATCH, ["anime_mha", "anime_boku"])
    assert result.deleted_ids == ["anime_boku"]
    return before


def _anime_ids(repository) -> set[str]:
    return {doc["id"] for doc in repository.list_all(ANIME)}


def test_restore_brings_back_record_count(repository, merged_store):
    result = RollbackManager(repository).restore_batch(BATCH)

    assert result.batch_id == BATCH
    assert result.restored_count == 1
    assert repository.count(ANIME) == len(merged_store[ANIME])


def test_deleted_records_come_back_under_new_identity(repository, merged_store):
    result = RollbackManager(repository).restore_batch(BATCH)

    restored_id = generate_restored_anime_id(BATCH, "anime_boku")
    assert result.id_map == {"anime_mha": "anime_mha", "anime_boku": restored_id}
    restored = repository.get(ANIME, restored_id)
    assert restored["title"] == "Boku no Hero Academia"
    assert repository.get(ANIME, "anime_boku") is None


def test_primary_consolidation_is_reverted(repository, merged_store):
    RollbackManager(repository).restore_batch(BATCH)

    primary = repository.get(ANIME, "anime_mha")
    original = next(doc for doc in merged_store[ANIME] if doc["id"] == "anime_mha")
    assert primary == original


def test_every_reference_resolves_after_restore(repository, merged_store):
    RollbackManager(repository).restore_batch(BATCH)
    anime_ids = _anime_ids(repository)
    restored_id = generate_restored_anime_id(BATCH, "anime_boku")

    for doc in repository.list_all(WATCHLIST) + repository.list_all(REVIEWS):
        assert doc["anime_id"] in anime_ids
    for doc in repository.list_all(CUSTOM_LISTS):
        assert set(doc["anime_ids"]) <= anime_ids

    assert repository.get(WATCHLIST, "wl_1")["progress"] == 2
    assert repository.get(WATCHLIST, "wl_2")["anime_id"] == restored_id
    assert repository.get(REVIEWS, "rev_1")["anime_id"] == restored_id
    assert repository.get(CUSTOM_LISTS, "l1")["anime_ids"] == [restored_id, "anime_other"]


def test_restoring_twice_equals_restoring_once(repository, merged_store):
    manager = RollbackManager(repository)
    first = manager.restore_batch(BATCH)
    after_first = {c: repository.list_all(c) for c in COLLECTIONS}

    second = manager.restore_batch(BATCH)

    assert {c: repository.list_all(c) for c in COLLECTIONS} == after_first
    assert second.id_map == first.id_map


def test_snapshots_are_not_consumed(repository, merged_store):
    RollbackManager(repository).restore_batch(BATCH)
    assert repository.count(MERGE_BATCHES) == 1


def test_unknown_batch_restores_nothing(repository):
    result = RollbackManager(repository).restore_batch("dedup:0")
    assert result.restored_count == 0
    assert result.id_map == {}
