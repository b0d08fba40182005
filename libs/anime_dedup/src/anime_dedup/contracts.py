"""Typed contracts for grouping, merge, rollback and ingestion results."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from common.models.anime import AnimeRecord

PreparedAction = Literal["insert", "existing"]


class DuplicateGroup(BaseModel):
    """Records believed to denote one series or title.

    Members are ordered deterministically by identity; a group always holds at
    least two records.
    """

    model_config = ConfigDict(extra="forbid")

    key: str = Field(..., description="Canonical key of the group's primary record")
    records: list[AnimeRecord] = Field(..., min_length=2)

    @property
    def member_ids(self) -> list[str]:
        """Store identities of the members (records without identity are skipped)."""
        return [record.id for record in self.records if record.id is not None]

    @property
    def titles(self) -> list[str]:
        return [record.title for record in self.records]


class MergeBatch(BaseModel):
    """Complete pre-merge state of one duplicate group.

    A batch is the only thing needed to reverse the merge it describes.
    """

    model_config = ConfigDict(extra="forbid")

    id: str | None = None
    batch_id: str = Field(min_length=1)
    group_key: str
    primary_id: str
    duplicate_ids: list[str]
    anime_snapshots: list[dict[str, Any]] = Field(default_factory=list)
    reference_snapshots: dict[str, list[dict[str, Any]]] = Field(default_factory=dict)
    created_at: datetime


class MergeResult(BaseModel):
    """Outcome of processing (or previewing) one duplicate group."""

    model_config = ConfigDict(extra="forbid")

    primary_id: str | None = None
    deleted_ids: list[str] = Field(default_factory=list)
    group_size: int = Field(default=0, ge=0)
    skipped: bool = False
    error: str | None = None


class DeduplicationRunResult(BaseModel):
    """Report of a full-catalog deduplication run."""

    model_config = ConfigDict(extra="forbid")

    batch_id: str
    groups_examined: int = Field(ge=0)
    groups_processed: int = Field(ge=0)
    changes_applied: bool
    results: list[MergeResult] = Field(default_factory=list)

    @property
    def failed(self) -> int:
        return sum(1 for result in self.results if result.error)


class RestoreResult(BaseModel):
    """Report of a merge batch restore."""

    model_config = ConfigDict(extra="forbid")

    batch_id: str
    restored_count: int = Field(ge=0)
    id_map: dict[str, str] = Field(
        default_factory=dict,
        description="Original anime identity -> identity after restore",
    )


class PreparedRecord(BaseModel):
    """An incoming record tagged for insertion or matched to a stored record."""

    model_config = ConfigDict(extra="forbid")

    record: AnimeRecord
    action: PreparedAction
    existing_id: str | None = None

    @model_validator(mode="after")
    def validate_existing_id(self) -> "PreparedRecord":
        """Ensure ``existing_id`` is set exactly when the record already exists.

        Raises:
            ValueError: If the action and identity disagree.
        """
        if self.action == "existing" and not self.existing_id:
            raise ValueError("existing records must carry existing_id")
        if self.action == "insert" and self.existing_id:
            raise ValueError("records tagged for insert must not carry existing_id")
        return self


class SkippedRecord(BaseModel):
    """Diagnostic for a raw record dropped at the ingestion boundary."""

    model_config = ConfigDict(extra="forbid")

    index: int = Field(ge=0)
    reason: str


class IngestionReport(BaseModel):
    """Preprocessor output for one fetched batch."""

    model_config = ConfigDict(extra="forbid")

    prepared: list[PreparedRecord] = Field(default_factory=list)
    skipped: list[SkippedRecord] = Field(default_factory=list)
