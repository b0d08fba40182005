"""Unit tests for the merge orchestrator."""

from datetime import UTC, datetime

import pytest
from anime_dedup.contracts import MergeBatch
from anime_dedup.exceptions import MergeError, RecordValidationError
from anime_dedup.merge import MergeOrchestrator
from anime_dedup.references import DEFAULT_REFERENCES, ForeignReference, MergePolicy
from anime_dedup.repository import ANIME, CUSTOM_LISTS, MERGE_BATCHES, REVIEWS, WATCHLIST

BATCH = "dedup:1700000000000"


@pytest.fixture
def naruto_group(add_anime, add_watchlist, add_review, add_custom_list) -> dict[str, str]:
    """Three stored Naruto records plus user data pointing at them."""
    ids = {
        "primary": add_anime(
            id="anime_a",
            title="Naruto",
            title_english="Naruto",
            my_anime_list_id=20,
            anilist_id=20,
            year=2002,
            description="A ninja story." * 10,
        ),
        "tv": add_anime(id="anime_b", title="Naruto (TV)", my_anime_list_id=20, year=2002),
        "shippuden": add_anime(id="anime_c", title="Naruto Shippuden", year=2007),
    }
    add_anime(id="anime_z", title="Monster")
    add_watchlist(id="wl_1", user_id="u1", anime_id="anime_a", status="Watching", progress=3)
    add_watchlist(id="wl_2", user_id="u1", anime_id="anime_b", status="Completed", progress=220)
    add_watchlist(id="wl_3", user_id="u2", anime_id="anime_c", status="Watching")
    add_review(id="rev_1", user_id="u3", anime_id="anime_c", created_at=datetime(2024, 1, 1, tzinfo=UTC))
    add_custom_list(id="l1", user_id="u1", name="Faves", anime_ids=["anime_b", "anime_z", "anime_c"])
    return ids


def test_merges_group_into_primary(repository, naruto_group):
    orchestrator = MergeOrchestrator(repository)

    result = orchestrator.process_duplicate_group(BATCH, ["anime_c", "anime_b", "anime_a"])

    assert result.primary_id == "anime_a"
    assert sorted(result.deleted_ids) == ["anime_b", "anime_c"]
    assert result.group_size == 3
    assert result.skipped is False
    assert repository.count(ANIME) == 2

    primary = repository.get(ANIME, "anime_a")
    assert primary["consolidated"] is True
    assert primary["series_key"] == "series:naruto"
    assert [s["anime_id"] for s in primary["seasons"]] == ["anime_a", "anime_b", "anime_c"]


def test_repoints_every_reference(repository, naruto_group):
    MergeOrchestrator(repository).process_duplicate_group(BATCH, list(naruto_group.values()))

    u1_entries = repository.query(WATCHLIST, user_id="u1")
    assert len(u1_entries) == 1
    assert u1_entries[0]["status"] == "Completed"
    assert u1_entries[0]["progress"] == 220
    assert repository.get(WATCHLIST, "wl_3")["anime_id"] == "anime_a"
    assert repository.get(REVIEWS, "rev_1")["anime_id"] == "anime_a"
    assert repository.get(CUSTOM_LISTS, "l1")["anime_ids"] == ["anime_a", "anime_z"]


def test_snapshot_holds_complete_pre_merge_state(repository, naruto_group):
    MergeOrchestrator(repository).process_duplicate_group(BATCH, list(naruto_group.values()))

    rows = repository.query(MERGE_BATCHES, batch_id=BATCH)
    assert len(rows) == 1
    batch = MergeBatch.model_validate(rows[0])
    assert batch.group_key == "mal:20"
    assert batch.primary_id == "anime_a"
    assert sorted(batch.duplicate_ids) == ["anime_b", "anime_c"]
    assert sorted(doc["id"] for doc in batch.anime_snapshots) == ["anime_a", "anime_b", "anime_c"]
    assert all(doc["consolidated"] is False for doc in batch.anime_snapshots)
    assert sorted(doc["id"] for doc in batch.reference_snapshots[WATCHLIST]) == ["wl_1", "wl_2", "wl_3"]
    assert [doc["id"] for doc in batch.reference_snapshots[REVIEWS]] == ["rev_1"]
    assert batch.reference_snapshots[REVIEWS][0]["created_at"].startswith("2024-01-01T00:00:00")
    assert batch.reference_snapshots[CUSTOM_LISTS][0]["anime_ids"] == ["anime_b", "anime_z", "anime_c"]


def test_rerun_on_merged_group_is_a_skip(repository, naruto_group):
    orchestrator = MergeOrchestrator(repository)
    orchestrator.process_duplicate_group(BATCH, list(naruto_group.values()))

    again = orchestrator.process_duplicate_group(BATCH, list(naruto_group.values()))

    assert again.skipped is True
    assert again.deleted_ids == []
    assert again.primary_id == "anime_a"
    assert repository.count(MERGE_BATCHES) == 1
    assert repository.count(ANIME) == 2


def test_unknown_members_are_a_skip(repository):
    result = MergeOrchestrator(repository).process_duplicate_group(BATCH, ["nope1", "nope2"])
    assert result.skipped is True
    assert result.primary_id is None


def test_failure_rolls_back_whole_group(repository, naruto_group):
    def explode(keep, other):
        raise RuntimeError("merge rule failed")

    failing = (
        ForeignReference(
            collection=WATCHLIST,
            foreign_key_field="anime_id",
            policy=MergePolicy.SINGLETON,
            merge_entries=explode,
        ),
        *DEFAULT_REFERENCES[1:],
    )
    before = {c: repository.list_all(c) for c in (ANIME, WATCHLIST, REVIEWS, CUSTOM_LISTS)}

    with pytest.raises(MergeError, match="merge rule failed"):
        MergeOrchestrator(repository, failing).process_duplicate_group(
            BATCH, list(naruto_group.values())
        )

    assert {c: repository.list_all(c) for c in before} == before
    assert repository.count(MERGE_BATCHES) == 0


def test_invalid_stored_member_is_reported(repository, naruto_group):
    repository.insert(ANIME, {"id": "anime_bad", "title": "   "})

    with pytest.raises(RecordValidationError):
        MergeOrchestrator(repository).process_duplicate_group(BATCH, ["anime_a", "anime_bad"])

    assert repository.get(ANIME, "anime_a")["consolidated"] is False
