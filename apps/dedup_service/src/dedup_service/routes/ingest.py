"""Ingestion boundary: prepare fetched catalog records for insertion."""

import logging
from typing import Any

from anime_dedup import DeduplicationService, IngestionReport, StoreUnavailableError
from common.config import get_settings
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ..dependencies import get_dedup_service

settings = get_settings()
logger = logging.getLogger(__name__)

router = APIRouter()


class PrepareRequest(BaseModel):
    """Raw records as delivered by an external catalog fetcher."""

    items: list[dict[str, Any]] = Field(
        ...,
        max_length=settings.service.max_ingest_batch_size,
        description="Raw anime-like records",
    )


@router.post("/prepare", response_model=IngestionReport)
def prepare_incoming(
    request: PrepareRequest,
    service: DeduplicationService = Depends(get_dedup_service),
) -> IngestionReport:
    """Collapse intra-batch duplicates and cross-check against the store.

    Malformed records are reported as skipped. A store failure fails the
    whole call so the fetcher can retry the batch.

    Raises:
        HTTPException: 503 if the store is unreachable, 500 on other failures.
    """
    try:
        return service.prepare_incoming(request.items)
    except StoreUnavailableError as e:
        logger.exception("Ingestion cross-check failed: store unavailable")
        raise HTTPException(status_code=503, detail=str(e)) from e
    except Exception as e:
        logger.exception("Ingestion preparation failed")
        raise HTTPException(
            status_code=500, detail=f"Ingestion preparation failed: {str(e)}"
        ) from e
