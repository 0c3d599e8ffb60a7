"""Custom exception hierarchy for fieldvisit."""

from __future__ import annotations


class FieldVisitError(Exception):
    """Base exception for all fieldvisit errors."""


class FieldVisitConfigError(FieldVisitError):
    """Invalid or missing configuration."""


class FieldVisitTransportError(FieldVisitError):
    """HTTP-level failure (network, non-2xx, invalid JSON, unexpected shape)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class FieldVisitStorageError(FieldVisitError):
    """The backing store could not persist the ledger document.

    Raised by the file store on the server side; the HTTP layer maps it
    to a ``500`` response.
    """

    def __init__(self, message: str, *, path: str = "") -> None:
        self.path = path
        super().__init__(message)
