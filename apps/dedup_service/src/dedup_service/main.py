"""Anime Deduplication Service - FastAPI application for catalog entity resolution.

This microservice exposes the deduplication engine: preparing fetched
catalog batches for insertion, merging duplicate records of the stored
catalog, and restoring merges from their snapshots.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from anime_dedup import DeduplicationService, StoreUnavailableError
from anime_dedup.repository import ANIME, DocumentRepository, create_repository
from common.config import get_settings
from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from .dependencies import get_repository
from .routes import admin, ingest

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.service.log_level),
    format=settings.service.log_format,
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the catalog store for the lifetime of the app.

    The repository and a ``DeduplicationService`` bound to it are published
    on ``app.state`` for the dependencies in ``dedup_service.dependencies``;
    the engine is disposed on shutdown.
    """
    logger.info("Initializing repository and deduplication service...")

    repository = None
    try:
        repository = create_repository(
            settings.database.database_url,
            echo=settings.database.echo,
            create_schema=settings.database.create_schema,
        )
        app.state.repository = repository
        app.state.dedup_service = DeduplicationService(repository, settings.dedup)

        logger.info(
            f"Deduplication service ready ({repository.count(ANIME)} anime records)"
        )
        yield

    finally:
        logger.info("Shutting down deduplication service...")
        if repository is not None:
            try:
                repository.dispose()
                logger.info("Database engine disposed successfully")
            except Exception:
                logger.exception("Error disposing database engine")


app = FastAPI(
    title=settings.service.api_title,
    description=settings.service.api_description,
    version=settings.service.api_version,
    lifespan=lifespan,
)

# The catalog dashboard calls the admin endpoints cross-origin
app.add_middleware(
    CORSMiddleware,  # ty: ignore[invalid-argument-type]
    allow_origins=settings.service.allowed_origins,
    allow_credentials=True,
    allow_methods=settings.service.allowed_methods,
    allow_headers=settings.service.allowed_headers,
)


@app.get("/health")
def health_check(
    repository: DocumentRepository = Depends(get_repository),
) -> dict[str, Any]:
    """Liveness plus a store round trip (anime record count).

    Raises:
        HTTPException: 503 if the store cannot be queried.
    """
    try:
        anime_count = repository.count(ANIME)
    except StoreUnavailableError as e:
        logger.error(f"Health check: store unavailable: {e}")
        raise HTTPException(status_code=503, detail="Store unavailable") from e
    except Exception as e:
        logger.exception("Health check failed")
        raise HTTPException(status_code=503, detail="Service unhealthy") from e

    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "service": "anime-dedup-service",
        "version": settings.service.api_version,
        "database": {"healthy": True, "anime_count": anime_count},
    }


app.include_router(admin.router, prefix="/admin/deduplication", tags=["admin"])
app.include_router(ingest.router, prefix="/ingest", tags=["ingest"])


@app.get("/")
async def root() -> dict[str, Any]:
    """Service metadata and endpoint directory."""
    return {
        "service": "Anime Deduplication Service",
        "version": settings.service.api_version,
        "description": "Entity resolution, merge and rollback for the anime catalog",
        "endpoints": {
            "health": "/health",
            "run": "/admin/deduplication/run",
            "restore": "/admin/deduplication/restore/{batch_id}",
            "preview": "/admin/deduplication/preview",
            "prepare": "/ingest/prepare",
            "docs": "/docs",
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "dedup_service.main:app",
        host=settings.service.dedup_service_host,
        port=settings.service.dedup_service_port,
        reload=settings.debug,
        log_level=settings.service.log_level.lower(),
    )
