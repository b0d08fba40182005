"""Unit tests for the SQLAlchemy document repository."""

from datetime import datetime

import pytest
from anime_dedup.repository import ANIME, CUSTOM_LISTS, REVIEWS, WATCHLIST
from common.models.anime import AnimeRecord


class TestCrud:
    """Test suite for basic document operations."""

    def test_insert_generates_prefixed_identity(self, repository):
        anime_id = repository.insert(ANIME, {"title": "Monster"})
        assert anime_id.startswith("anime_")
        assert repository.get(ANIME, anime_id)["title"] == "Monster"

    def test_insert_keeps_given_identity(self, repository):
        assert repository.insert(WATCHLIST, {"id": "wl_1", "user_id": "u1", "anime_id": "a"}) == "wl_1"

    def test_documents_do_not_expose_derived_columns(self, repository, add_anime):
        anime_id = add_anime(title="Monster")
        assert "normalized_title" not in repository.get(ANIME, anime_id)

    def test_roundtrips_json_fields(self, repository, add_anime):
        anime_id = add_anime(title="Monster", genres=["Mystery"], alternate_titles=["MONSTER"])
        doc = repository.get(ANIME, anime_id)
        assert doc["genres"] == ["Mystery"]
        assert AnimeRecord.model_validate(doc).alternate_titles == ["MONSTER"]

    def test_patch_and_delete_report_missing_documents(self, repository, add_anime):
        anime_id = add_anime(title="Monster")

        assert repository.patch(ANIME, anime_id, {"year": 2004}) is True
        assert repository.get(ANIME, anime_id)["year"] == 2004
        assert repository.patch(ANIME, "missing", {"year": 1}) is False

        assert repository.delete(ANIME, anime_id) is True
        assert repository.delete(ANIME, anime_id) is False
        assert repository.get(ANIME, anime_id) is None

    def test_query_and_count(self, repository, add_anime):
        add_anime(id="a2", title="Naruto", my_anime_list_id=20)
        add_anime(id="a1", title="Naruto (TV)", my_anime_list_id=20)
        add_anime(id="a3", title="Bleach")

        assert [d["id"] for d in repository.query(ANIME, my_anime_list_id=20)] == ["a1", "a2"]
        assert [d["id"] for d in repository.list_all(ANIME)] == ["a1", "a2", "a3"]
        assert repository.count(ANIME) == 3

    def test_query_by_normalized_title_follows_title_changes(self, repository, add_anime):
        anime_id = add_anime(title="Naruto (TV)")
        assert [d["id"] for d in repository.query(ANIME, normalized_title="naruto")] == [anime_id]

        repository.patch(ANIME, anime_id, {"title": "Bleach"})
        assert repository.query(ANIME, normalized_title="naruto") == []
        assert len(repository.query(ANIME, normalized_title="bleach")) == 1

    def test_query_contains(self, repository, add_custom_list):
        add_custom_list(id="l1", user_id="u1", name="Faves", anime_ids=["a1", "a2"])
        add_custom_list(id="l2", user_id="u1", name="Later", anime_ids=["a3"])
        assert [d["id"] for d in repository.query_contains(CUSTOM_LISTS, "anime_ids", "a2")] == ["l1"]

    def test_iso_timestamps_are_accepted(self, repository):
        repository.insert(
            REVIEWS,
            {
                "id": "rev_1",
                "user_id": "u1",
                "anime_id": "a1",
                "created_at": "2024-01-02T03:04:05",
            },
        )
        assert repository.get(REVIEWS, "rev_1")["created_at"] == datetime(2024, 1, 2, 3, 4, 5)

    def test_unknown_collection_and_field_rejected(self, repository):
        with pytest.raises(ValueError, match="Unknown collection"):
            repository.get("characters", "x")
        with pytest.raises(ValueError, match="Unknown field"):
            repository.insert(ANIME, {"title": "X", "score": 9})


class TestTransactions:
    """Test suite for transaction atomicity."""

    def test_failure_rolls_back_every_write(self, repository, add_anime):
        keep = add_anime(title="Monster")

        with pytest.raises(RuntimeError):
            with repository.transaction():
                repository.insert(ANIME, {"title": "Bleach"})
                repository.delete(ANIME, keep)
                raise RuntimeError("boom")

        assert repository.count(ANIME) == 1
        assert repository.get(ANIME, keep) is not None

    def test_nested_transactions_join_the_outer_one(self, repository):
        with pytest.raises(RuntimeError):
            with repository.transaction():
                with repository.transaction():
                    repository.insert(ANIME, {"title": "Bleach"})
                raise RuntimeError("boom")

        assert repository.count(ANIME) == 0

    def test_reads_see_uncommitted_writes_inside_transaction(self, repository):
        with repository.transaction():
            anime_id = repository.insert(ANIME, {"title": "Bleach"})
            assert repository.get(ANIME, anime_id)["title"] == "Bleach"
            repository.delete(ANIME, anime_id)
            assert repository.get(ANIME, anime_id) is None


class TestFindExistingAnime:
    """Test suite for the ingestion cross-check lookup."""

    def test_matches_by_myanimelist_id(self, repository, add_anime):
        anime_id = add_anime(title="Naruto", my_anime_list_id=20)
        assert repository.find_existing_anime(AnimeRecord(title="NARUTO", my_anime_list_id=20)) == anime_id

    def test_matches_by_anilist_id(self, repository, add_anime):
        anime_id = add_anime(title="Naruto", anilist_id=20)
        assert repository.find_existing_anime(AnimeRecord(title="Other", anilist_id=20)) == anime_id

    def test_matches_by_any_normalized_title_variant(self, repository, add_anime):
        anime_id = add_anime(title="Attack on Titan")
        incoming = AnimeRecord(title="Shingeki no Kyojin", alternate_titles=["ATTACK ON TITAN (TV)"])
        assert repository.find_existing_anime(incoming) == anime_id

    def test_no_match(self, repository, add_anime):
        add_anime(title="Attack on Titan")
        assert repository.find_existing_anime(AnimeRecord(title="Monster")) is None
