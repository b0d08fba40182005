"""Admin API endpoints for catalog deduplication.

Triggers full-catalog deduplication runs, restores merge batches and
previews the duplicate groups a run would merge.
"""

import logging

from anime_dedup import (
    DeduplicationError,
    DeduplicationRunResult,
    DeduplicationService,
    RestoreResult,
    StoreUnavailableError,
)
from anime_dedup.scoring import select_primary_entry
from common.config import get_settings
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from ..dependencies import get_dedup_service

settings = get_settings()
logger = logging.getLogger(__name__)

router = APIRouter()


class RunRequest(BaseModel):
    """Request model for a deduplication run."""

    dry_run: bool = Field(default=False, description="Report groups without merging")
    limit_groups: int | None = Field(
        default=None, ge=1, description="Process only the first N groups"
    )


class GroupPreview(BaseModel):
    """One candidate duplicate group."""

    key: str = Field(..., description="Canonical key of the group")
    primary_id: str | None = Field(..., description="Record that a merge would keep")
    member_ids: list[str] = Field(..., description="All member identities")
    titles: list[str] = Field(..., description="Member titles in member order")


class PreviewResponse(BaseModel):
    """Response model for the duplicate group preview."""

    total_groups: int = Field(..., description="Groups returned")
    groups: list[GroupPreview] = Field(default_factory=list)


@router.post("/run", response_model=DeduplicationRunResult)
def run_deduplication(
    request: RunRequest,
    service: DeduplicationService = Depends(get_dedup_service),
) -> DeduplicationRunResult:
    """Find and merge duplicate groups across the whole catalog.

    Per-group failures are reported inside the result; only failures that
    stop the run as a whole map to an error status.

    Raises:
        HTTPException: 503 if the store is unreachable, 500 on other failures.
    """
    try:
        return service.run_deduplication(
            dry_run=request.dry_run, limit_groups=request.limit_groups
        )
    except StoreUnavailableError as e:
        logger.exception("Deduplication run failed: store unavailable")
        raise HTTPException(status_code=503, detail=str(e)) from e
    except Exception as e:
        logger.exception("Deduplication run failed")
        raise HTTPException(
            status_code=500, detail=f"Deduplication run failed: {str(e)}"
        ) from e


@router.post("/restore/{batch_id}", response_model=RestoreResult)
def restore_batch(
    batch_id: str,
    service: DeduplicationService = Depends(get_dedup_service),
) -> RestoreResult:
    """Restore every merge recorded under ``batch_id``.

    Unknown batch ids return ``restored_count == 0``.

    Raises:
        HTTPException: 503 if the store is unreachable, 500 if the restore failed.
    """
    try:
        return service.restore_batch(batch_id)
    except StoreUnavailableError as e:
        logger.exception(f"Restore of {batch_id} failed: store unavailable")
        raise HTTPException(status_code=503, detail=str(e)) from e
    except DeduplicationError as e:
        logger.exception(f"Restore of {batch_id} failed")
        raise HTTPException(status_code=500, detail=str(e)) from e


@router.get("/preview", response_model=PreviewResponse)
def preview_groups(
    limit: int = Query(default=50, ge=1, le=settings.service.max_preview_groups),
    service: DeduplicationService = Depends(get_dedup_service),
) -> PreviewResponse:
    """List the duplicate groups a run would currently merge.

    Raises:
        HTTPException: 503 if the store is unreachable, 500 on other failures.
    """
    try:
        groups = service.find_groups(limit=limit)
        markers = service.config.placeholder_poster_markers
        previews = [
            GroupPreview(
                key=group.key,
                primary_id=select_primary_entry(group.records, markers).id,
                member_ids=group.member_ids,
                titles=group.titles,
            )
            for group in groups
        ]
        return PreviewResponse(total_groups=len(previews), groups=previews)
    except StoreUnavailableError as e:
        logger.exception("Preview failed: store unavailable")
        raise HTTPException(status_code=503, detail=str(e)) from e
    except Exception as e:
        logger.exception("Preview failed")
        raise HTTPException(status_code=500, detail=f"Preview failed: {str(e)}") from e
