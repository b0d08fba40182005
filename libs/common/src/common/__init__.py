"""Shared configuration, models and utilities for the deduplication packages."""
