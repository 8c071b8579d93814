"""Error taxonomy shared by the transport boundary and the mutation layer."""

from __future__ import annotations


class TransportError(Exception):
    """Network or server failure; always recoverable by rolling back."""


class NotFoundError(TransportError):
    """The target entity no longer exists server side."""


class ValidationError(Exception):
    """Malformed input, reported inline against ``field``."""

    def __init__(self, message: str, field: str = "content") -> None:
        super().__init__(message)
        self.message = message
        self.field = field


class DraftPendingError(ValueError):
    """A draft is already pending in the target collection."""


__all__ = ["DraftPendingError", "NotFoundError", "TransportError", "ValidationError"]
