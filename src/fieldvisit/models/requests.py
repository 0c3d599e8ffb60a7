"""Pydantic request models for client entrypoints.

These models provide a consistent "validate → normalize → execute" flow.
They are used by :class:`fieldvisit.state.ledger.LedgerState` so that a
rejected input never leaves a half-applied mutation behind.
"""

from __future__ import annotations

import datetime as dt
import math

from pydantic import BaseModel, ConfigDict, field_validator

from fieldvisit.ingestion.normalize import coerce_store_id, parse_date


class StoreRequest(BaseModel):
    """Request addressing a store."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
        str_strip_whitespace=True,
    )

    store_id: int | str

    @field_validator("store_id", mode="before")
    @classmethod
    def _store_id_non_empty(cls, value: object) -> int | str:
        store_id = coerce_store_id(value)
        if store_id == "":
            raise ValueError("store_id must be non-empty")
        return store_id


class DatedStoreRequest(StoreRequest):
    date: dt.date

    @field_validator("date", mode="before")
    @classmethod
    def _parse_date(cls, value: object) -> dt.date:
        parsed = parse_date(value)
        if parsed is None:
            raise ValueError(f"date must be an ISO calendar date, got {value!r}")
        return parsed


class RecordVisitRequest(DatedStoreRequest):
    observer: str = ""
    comment: str = ""
    our_presence: bool = False
    other_presence: bool = False


class SchedulePlanRequest(DatedStoreRequest):
    note: str = ""


class AssignTaskRequest(StoreRequest):
    text: str

    @field_validator("text")
    @classmethod
    def _text_non_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("text must be non-empty")
        return value


class UpdatePositionRequest(StoreRequest):
    lat: float
    lng: float

    @field_validator("lat", "lng")
    @classmethod
    def _finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("coordinates must be finite")
        return value
