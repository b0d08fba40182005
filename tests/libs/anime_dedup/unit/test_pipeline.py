"""Unit tests for the deduplication service jobs."""

import pytest
from anime_dedup.exceptions import MergeError
from anime_dedup.pipeline import DeduplicationService
from anime_dedup.repository import ANIME, MERGE_BATCHES, WATCHLIST

BATCH = "dedup:1700000000000"


@pytest.fixture
def catalog(repository, add_anime, add_watchlist):
    """Catalog with a Naruto group, a Hero Academia pair and one unrelated title."""
    add_anime(
        id="anime_a",
        title="Naruto",
        title_english="Naruto",
        my_anime_list_id=20,
        year=2002,
    )
    add_anime(id="anime_b", title="Naruto (TV)", my_anime_list_id=20, year=2002)
    add_anime(id="anime_c", title="Naruto Shippuden", year=2007)
    add_anime(
        id="anime_m",
        title="My Hero Academia",
        title_english="My Hero Academia",
        my_anime_list_id=31964,
        year=2016,
    )
    add_anime(id="anime_n", title="Boku no Hero Academia", year=2016)
    add_anime(id="anime_z", title="Monster")
    add_watchlist(id="wl_1", user_id="u1", anime_id="anime_b", status="Watching", progress=5)
    return repository


@pytest.fixture
def service(catalog) -> DeduplicationService:
    return DeduplicationService(catalog)


def test_find_groups_in_deterministic_order(service):
    groups = service.find_groups()

    assert [g.member_ids for g in groups] == [
        ["anime_a", "anime_b", "anime_c"],
        ["anime_m", "anime_n"],
    ]
    assert [g.key for g in groups] == ["mal:20", "mal:31964"]
    assert len(service.find_groups(limit=1)) == 1


def test_dry_run_reports_without_writing(service, catalog):
    before = catalog.list_all(ANIME)

    result = service.run_deduplication(dry_run=True, batch_id=BATCH)

    assert result.groups_examined == 2
    assert result.groups_processed == 2
    assert result.changes_applied is False
    assert [(r.primary_id, r.deleted_ids) for r in result.results] == [
        ("anime_a", ["anime_b", "anime_c"]),
        ("anime_m", ["anime_n"]),
    ]
    assert catalog.list_all(ANIME) == before
    assert catalog.count(MERGE_BATCHES) == 0


def test_full_run_merges_every_group(service, catalog):
    result = service.run_deduplication(batch_id=BATCH)

    assert result.batch_id == BATCH
    assert result.changes_applied is True
    assert result.failed == 0
    assert {doc["id"] for doc in catalog.list_all(ANIME)} == {"anime_a", "anime_m", "anime_z"}
    assert catalog.get(WATCHLIST, "wl_1")["anime_id"] == "anime_a"
    assert catalog.count(MERGE_BATCHES) == 2


def test_second_run_finds_nothing(service, catalog):
    service.run_deduplication(batch_id=BATCH)

    again = service.run_deduplication()

    assert again.groups_examined == 0
    assert again.results == []
    assert again.changes_applied is False
    assert catalog.count(MERGE_BATCHES) == 2


def test_generated_batch_id_uses_configured_prefix(service):
    result = service.run_deduplication(dry_run=True)
    assert result.batch_id.startswith("dedup:")


def test_limit_groups(service, catalog):
    result = service.run_deduplication(limit_groups=1, batch_id=BATCH)

    assert result.groups_examined == 2
    assert result.groups_processed == 1
    assert len(result.results) == 1
    assert catalog.count(ANIME) == 4
    assert catalog.get(ANIME, "anime_n") is not None


def test_failed_group_does_not_stop_the_run(service, catalog, monkeypatch):
    original = service.merger.process_duplicate_group

    def flaky(batch_id, group_ids):
        if "anime_a" in group_ids:
            raise MergeError("disk full")
        return original(batch_id, group_ids)

    monkeypatch.setattr(service.merger, "process_duplicate_group", flaky)

    result = service.run_deduplication(batch_id=BATCH)

    assert result.failed == 1
    assert result.results[0].error == "disk full"
    assert result.results[0].group_size == 3
    assert result.results[1].deleted_ids == ["anime_n"]
    assert result.changes_applied is True
    assert catalog.get(ANIME, "anime_b") is not None
    assert catalog.get(ANIME, "anime_n") is None


def test_invalid_stored_documents_are_skipped(service, catalog):
    catalog.insert(ANIME, {"id": "anime_bad", "title": "   "})

    records = service.load_records()

    assert "anime_bad" not in {r.id for r in records}
    assert len(service.find_groups()) == 2


def test_restore_batch_reverses_the_run(service, catalog):
    service.run_deduplication(batch_id=BATCH)

    restored = service.restore_batch(BATCH)

    assert restored.restored_count == 2
    assert catalog.count(ANIME) == 6
    assert restored.id_map["anime_a"] == "anime_a"
    assert catalog.get(ANIME, "anime_a")["consolidated"] is False
    watchlist_target = catalog.get(WATCHLIST, "wl_1")["anime_id"]
    assert watchlist_target == restored.id_map["anime_b"]
    assert catalog.get(ANIME, watchlist_target)["title"] == "Naruto (TV)"


def test_prepare_incoming_checks_the_store(service):
    report = service.prepare_incoming([{"title": "NARUTO", "mal_id": 20}, {"title": "Frieren"}, 7])

    assert [(p.action, p.existing_id) for p in report.prepared] == [
        ("existing", "anime_a"),
        ("insert", None),
    ]
    assert [s.index for s in report.skipped] == [2]
