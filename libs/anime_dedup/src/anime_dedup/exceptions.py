"""Domain errors for the deduplication engine."""


class DeduplicationError(RuntimeError):
    """Base class for deduplication engine errors."""


class StoreUnavailableError(DeduplicationError):
    """Raised when the backing store cannot be reached; callers may retry."""


class MergeError(DeduplicationError):
    """Raised when a duplicate group could not be merged; the group's transaction was rolled back."""


class RollbackError(DeduplicationError):
    """Raised when a merge batch could not be restored; nothing was written."""


class RecordValidationError(DeduplicationError, ValueError):
    """Raised when a stored or incoming document does not describe a valid record."""
