"""Pydantic models for anime records and the user data that references them."""
from datetime import datetime
from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class AnimeType(str, Enum):
    """Anime type classification."""

    MOVIE = "MOVIE"
    ONA = "ONA"
    OVA = "OVA"
    SPECIAL = "SPECIAL"
    TV = "TV"
    UNKNOWN = "UNKNOWN"


class WatchStatus(str, Enum):
    """Watchlist status values as stored by the application."""

    WATCHING = "Watching"
    COMPLETED = "Completed"
    PLAN_TO_WATCH = "Plan to Watch"
    ON_HOLD = "On Hold"
    DROPPED = "Dropped"


# =============================================================================
# ANIME RECORD
# =============================================================================


class SeasonEntry(BaseModel):
    """Essential fields of a record absorbed into a consolidated series."""

    model_config = ConfigDict(extra="ignore")

    anime_id: str | None = Field(None, description="Identity of the absorbed record, if stored")
    anilist_id: int | None = Field(None, description="AniList id of the absorbed record")
    episodes: int | None = Field(None, description="Episode count of the season")
    label: str | None = Field(None, description="Continuation label (e.g. 'Shippuden', 'Part 2')")
    my_anime_list_id: int | None = Field(None, description="MyAnimeList id of the absorbed record")
    season: int | None = Field(None, description="Explicit season number, absent for the original run")
    title: str = Field(..., description="Title of the absorbed record")
    year: int | None = Field(None, description="Release year of the season")


class AnimeRecord(BaseModel):
    """A single anime title as stored in (or fetched for) the catalog.

    External catalogs deliver loosely shaped payloads, so the catalog spellings
    (``mal_id``, ``myAnimeListId``, ``anilistId``, ``posterUrl`` ...) are
    accepted as validation aliases. Everything except ``title`` is optional.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    # =====================================================================
    # SCALAR FIELDS (alphabetical)
    # =====================================================================
    anilist_id: int | None = Field(
        None,
        validation_alias=AliasChoices("anilist_id", "anilistId"),
        description="AniList identifier",
    )
    consolidated: bool = Field(
        default=False, description="Whether season records were folded into this one"
    )
    description: str | None = Field(None, description="Synopsis")
    episodes: int | None = Field(None, ge=0, description="Episodes released / known")
    id: str | None = Field(
        None,
        validation_alias=AliasChoices("id", "_id"),
        description="Store identity; absent for freshly fetched records",
    )
    my_anime_list_id: int | None = Field(
        None,
        validation_alias=AliasChoices("my_anime_list_id", "myAnimeListId", "mal_id"),
        description="MyAnimeList identifier",
    )
    poster_url: str | None = Field(
        None,
        validation_alias=AliasChoices("poster_url", "posterUrl"),
        description="Poster image URL",
    )
    rating: float | None = Field(None, description="Average community rating")
    series_key: str | None = Field(
        None,
        validation_alias=AliasChoices("series_key", "seriesKey"),
        description="Series identity shared by consolidated seasons",
    )
    title: str = Field(..., min_length=1, description="Primary title as delivered by the catalog")
    title_english: str | None = Field(
        None,
        validation_alias=AliasChoices("title_english", "titleEnglish"),
        description="Official English title",
    )
    title_romaji: str | None = Field(
        None,
        validation_alias=AliasChoices("title_romaji", "titleRomaji"),
        description="Romanized Japanese title",
    )
    total_episodes: int | None = Field(
        None,
        ge=0,
        validation_alias=AliasChoices("total_episodes", "totalEpisodes"),
        description="Planned total episode count",
    )
    type: AnimeType | None = Field(None, description="TV, Movie, OVA, etc.")
    year: int | None = Field(None, description="Release year")

    # =====================================================================
    # ARRAY FIELDS (alphabetical)
    # =====================================================================
    alternate_titles: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("alternate_titles", "alternateTitles", "synonyms"),
        description="Alternative titles and synonyms",
    )
    genres: list[str] = Field(default_factory=list, description="Genres")
    seasons: list[SeasonEntry] | None = Field(
        None, description="Absorbed season records, ordered by season number"
    )
    studios: list[str] = Field(default_factory=list, description="Animation studios")

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        """Reject whitespace-only titles."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("title must not be blank")
        return stripped

    @field_validator("type", mode="before")
    @classmethod
    def coerce_type(cls, v: object) -> object:
        """Map catalog spellings ('tv', 'Movie') onto the enum, unknown values to UNKNOWN."""
        if v is None or isinstance(v, AnimeType):
            return v
        text = str(v).strip().upper()
        return text if text in AnimeType.__members__ else AnimeType.UNKNOWN

    def all_titles(self) -> list[str]:
        """Return every non-empty title variant, primary title first."""
        titles = [self.title, self.title_english, self.title_romaji, *self.alternate_titles]
        seen: set[str] = set()
        result: list[str] = []
        for title in titles:
            if title and title.strip() and title not in seen:
                seen.add(title)
                result.append(title)
        return result


# =============================================================================
# REFERENCING DOCUMENTS
# =============================================================================


class WatchlistEntry(BaseModel):
    """One user's tracking entry for one anime (singleton per user and title)."""

    model_config = ConfigDict(extra="ignore")

    anime_id: str = Field(..., description="Referenced anime identity")
    id: str | None = Field(None, description="Store identity")
    notes: str | None = Field(None, description="Free-text user notes")
    progress: int | None = Field(None, ge=0, description="Episodes watched")
    status: str | None = Field(None, description="Watch status (see WatchStatus)")
    user_id: str = Field(..., description="Owning user")
    user_rating: float | None = Field(None, description="User's own rating")


class Review(BaseModel):
    """A user review of an anime (at most one kept per user and title after merges)."""

    model_config = ConfigDict(extra="ignore")

    anime_id: str = Field(..., description="Referenced anime identity")
    body: str | None = Field(None, description="Review text")
    created_at: datetime = Field(..., description="Creation timestamp")
    id: str | None = Field(None, description="Store identity")
    rating: float | None = Field(None, description="Review score")
    updated_at: datetime | None = Field(None, description="Last edit timestamp")
    user_id: str = Field(..., description="Author")


class CustomList(BaseModel):
    """A user-curated ordered list of anime identities."""

    model_config = ConfigDict(extra="ignore")

    anime_ids: list[str] = Field(default_factory=list, description="Ordered members")
    id: str | None = Field(None, description="Store identity")
    name: str = Field(..., description="List name")
    user_id: str = Field(..., description="Owning user")
