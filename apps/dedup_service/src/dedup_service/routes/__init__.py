"""HTTP route handlers for the deduplication service."""

from dedup_service.routes import admin, ingest

__all__ = ["admin", "ingest"]
