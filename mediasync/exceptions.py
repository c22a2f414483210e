"""Error taxonomy shared by the sync services."""
from __future__ import annotations


class SyncError(RuntimeError):
    """Base class for failures raised by the sync services."""


class TransientIOError(SyncError):
    """Raised when the document store is unavailable or a write did not commit."""


class PermissionDeniedError(SyncError):
    """Raised when ownership or participation rules reject an operation."""


class ValidationFailure(SyncError):
    """Raised before any store access when input or identity is missing."""


class NotFoundError(SyncError):
    """Raised when the target conversation or post no longer exists."""


__all__ = [
    "SyncError",
    "TransientIOError",
    "PermissionDeniedError",
    "ValidationFailure",
    "NotFoundError",
]
