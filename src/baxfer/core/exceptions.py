"""Custom exceptions for baxfer."""

from __future__ import annotations


class BaxferError(Exception):
    """Base exception for all baxfer errors.

    ``message`` is the technical description that goes to the log. ``hint`` is
    an optional short, provider-specific line meant for the user.
    """

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint

    @property
    def user_message(self) -> str:
        """The single line shown to the user."""
        return self.hint or self.message


class StorageError(BaxferError):
    """Raised when a storage backend operation fails."""


class NotFoundError(StorageError):
    """Raised when a remote object does not exist."""


class AccessDeniedError(StorageError):
    """Raised when the backend rejects our credentials or permissions."""


class TransportError(StorageError):
    """Raised on network or connection level failures."""


class ValidationError(BaxferError):
    """Raised when caller-supplied configuration is invalid."""


class CompressionError(BaxferError):
    """Raised when streaming compression fails."""


class CancelledError(BaxferError):
    """Raised when an operation is aborted by external cancellation."""

    def __init__(self, message: str = "Operation cancelled", **kwargs: str | None) -> None:
        super().__init__(message, **kwargs)
