"""
Exceptions for snapshot sync.
"""


class SyncError(Exception):
    """Base exception for sync operations."""


class NotReadyError(SyncError):
    """Raised when sync is disabled or the remote store is not authorized.

    Not retried by the orchestrator.
    """


class TransportError(SyncError):
    """Raised when the remote store cannot be reached or rejects a request.

    Retryable on a future attempt.
    """


class RemoteNotFoundError(TransportError):
    """Raised when the remote document does not exist yet."""


class MissingRevisionError(SyncError):
    """Raised when an upload or import completes without a revision token."""


class InvalidBookkeepingError(SyncError):
    """Raised when an empty or non-numeric value is passed to a bookkeeping setter."""


class SnapshotFormatError(SyncError):
    """Raised when a stored snapshot document cannot be parsed."""


class ConflictResolutionError(SyncError):
    """Raised when a conflict arbiter fails to produce an answer."""
