"""FastAPI service exposing the anime deduplication engine."""
