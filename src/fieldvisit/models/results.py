"""Outcome models returned across the presentation boundary."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class HydrateSource(StrEnum):
    REMOTE = "remote"
    CACHE = "cache"


class PersistResult(BaseModel):
    """Outcome of a ledger mutation.

    Parameters
    ----------
    success : bool
        ``True`` when the whole document reached the backing store (or
        nothing needed writing).
    changed : bool
        ``False`` when the mutation was a no-op and no write was attempted.
    error : str or None
        Transport error message when ``success`` is ``False``. The ledger
        has been mirrored to the local cache in that case.
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    changed: bool = True
    error: str | None = None


class HydrateResult(BaseModel):
    """Where the ledger came from on startup."""

    model_config = ConfigDict(frozen=True)

    source: HydrateSource
    error: str | None = None

    @property
    def from_remote(self) -> bool:
        return self.source == HydrateSource.REMOTE
