"""Configuration package for the deduplication engine and service."""

from .settings import Environment, Settings, get_settings

__all__ = ["Environment", "Settings", "get_settings"]
