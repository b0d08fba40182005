import logging

from anime_dedup import DeduplicationService
from anime_dedup.repository import DocumentRepository
from fastapi import Request

logger = logging.getLogger(__name__)


async def get_repository(request: Request) -> DocumentRepository:
    """
    Dependency that provides the anime record repository.

    The repository is created in the FastAPI lifespan event and stored in the
    app's state; its engine is disposed by the lifespan on shutdown.

    Args:
        request: FastAPI request object containing app state

    Returns:
        Initialized DocumentRepository instance

    Raises:
        RuntimeError: If the repository is not available in app state
    """
    if (
        not hasattr(request.app.state, "repository")
        or request.app.state.repository is None
    ):
        logger.error("Repository not initialized in app state.")
        raise RuntimeError("Repository not available.")
    return request.app.state.repository


async def get_dedup_service(request: Request) -> DeduplicationService:
    """
    Dependency that provides a DeduplicationService instance.

    Args:
        request: FastAPI request object containing app state

    Returns:
        Initialized DeduplicationService instance

    Raises:
        RuntimeError: If DeduplicationService not available in app state
    """
    if (
        not hasattr(request.app.state, "dedup_service")
        or request.app.state.dedup_service is None
    ):
        logger.error("DeduplicationService not initialized in app state.")
        raise RuntimeError("DeduplicationService not available.")
    return request.app.state.dedup_service
