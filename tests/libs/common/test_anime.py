"""Unit tests for anime record model validation."""

import pytest
from common.models.anime import AnimeRecord, AnimeType, WatchlistEntry
from pydantic import ValidationError


class TestAnimeRecordModel:
    """Test suite for AnimeRecord validation at the ingestion boundary."""

    def test_accepts_catalog_aliases(self):
        """Catalog spellings map onto the model fields."""
        record = AnimeRecord.model_validate(
            {
                "title": "Naruto",
                "mal_id": 20,
                "anilistId": 20,
                "posterUrl": "https://example.com/naruto.jpg",
                "totalEpisodes": 220,
                "synonyms": ["NARUTO"],
            }
        )
        assert record.my_anime_list_id == 20
        assert record.anilist_id == 20
        assert record.poster_url == "https://example.com/naruto.jpg"
        assert record.total_episodes == 220
        assert record.alternate_titles == ["NARUTO"]

    def test_accepts_document_id_alias(self):
        record = AnimeRecord.model_validate({"_id": "anime_1", "title": "Naruto"})
        assert record.id == "anime_1"

    def test_missing_title_invalid(self):
        with pytest.raises(ValidationError) as exc_info:
            AnimeRecord.model_validate({"year": 2002})
        assert exc_info.value.errors()[0]["loc"] == ("title",)

    def test_blank_title_invalid(self):
        with pytest.raises(ValidationError, match="title must not be blank"):
            AnimeRecord(title="   ")

    def test_title_is_stripped(self):
        assert AnimeRecord(title="  One Piece ").title == "One Piece"

    def test_unknown_type_maps_to_unknown(self):
        assert AnimeRecord(title="X", type="tv").type == AnimeType.TV
        assert AnimeRecord(title="X", type="Music").type == AnimeType.UNKNOWN

    def test_negative_episode_count_invalid(self):
        with pytest.raises(ValidationError):
            AnimeRecord(title="X", episodes=-1)

    def test_unknown_fields_ignored(self):
        record = AnimeRecord.model_validate({"title": "X", "score_histogram": [1, 2]})
        assert not hasattr(record, "score_histogram")

    def test_all_titles_primary_first_without_repeats(self):
        record = AnimeRecord(
            title="Boku no Hero Academia",
            title_english="My Hero Academia",
            title_romaji="Boku no Hero Academia",
            alternate_titles=["My Hero Academia", "MHA", "  "],
        )
        assert record.all_titles() == [
            "Boku no Hero Academia",
            "My Hero Academia",
            "MHA",
        ]


class TestWatchlistEntryModel:
    def test_minimal_entry(self):
        entry = WatchlistEntry(user_id="u1", anime_id="anime_1")
        assert entry.status is None
        assert entry.progress is None
