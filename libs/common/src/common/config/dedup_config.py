"""Matching and merge tuning for the deduplication engine."""

from pydantic import BaseModel, Field


class DedupConfig(BaseModel):
    """Thresholds and markers used by the matching components.

    The defaults reproduce the catalog behaviour the engine was tuned on;
    they are not meant as general-purpose fuzzy matching settings.
    """

    similarity_threshold: float = Field(
        default=0.92,
        ge=0.0,
        le=1.0,
        description="Minimum title similarity for a typo-level duplicate edge",
    )
    romanization_bridge_min_overlap: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description=(
            "Minimum core-token Jaccard overlap required by the same-year "
            "romanized/localized bridge. 0.0 disables the overlap guard."
        ),
    )
    batch_id_prefix: str = Field(
        default="dedup", min_length=1, description="Prefix for generated merge batch ids"
    )
    placeholder_poster_markers: list[str] = Field(
        default=["placeholder", "no_image", "noimage", "questionmark", "default.jpg"],
        description="Substrings identifying placeholder poster URLs",
    )
