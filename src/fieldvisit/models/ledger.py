"""Ledger entities and the ledger document.

Wire keys follow the backing store document::

    {
      "visits":          [{"tk", "date", "user", "comment", "our_presence", "other_presence", "timestamp"}],
      "tasks":           [{"tk", "text", "done"}],
      "plans":           [{"tk", "date", "note", "timestamp"}],
      "store_positions": [{"tk", "lat", "lng"}]
    }
"""

from __future__ import annotations

import logging
import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from fieldvisit._constants import LEDGER_KEYS
from fieldvisit.ingestion.normalize import store_key
from fieldvisit.models._base import (
    CalendarDate,
    Coordinate,
    FieldVisitBaseModel,
    Flag,
    StoreId,
    Text,
    Timestamp,
)

_logger = logging.getLogger(__name__)


class Visit(FieldVisitBaseModel):
    """An observation recorded at a store.

    ``date`` is ``None`` when the stored value could not be parsed; such a
    visit is kept in the ledger but never counts as recent.
    """

    store_id: StoreId = Field(alias="tk")
    date: CalendarDate = None
    observer: Text = Field(default="", alias="user")
    comment: Text = ""
    our_presence: Flag = False
    other_presence: Flag = False
    recorded_at: Timestamp = Field(default=None, alias="timestamp")

    @property
    def key(self) -> str:
        return store_key(self.store_id)


class Task(FieldVisitBaseModel):
    """A supervisor assignment for a store."""

    store_id: StoreId = Field(alias="tk")
    text: Text = ""
    done: Flag = False

    @property
    def key(self) -> str:
        return store_key(self.store_id)


class Plan(FieldVisitBaseModel):
    """A scheduled future visit."""

    store_id: StoreId = Field(alias="tk")
    date: CalendarDate = None
    note: Text = ""
    recorded_at: Timestamp = Field(default=None, alias="timestamp")

    @property
    def key(self) -> str:
        return store_key(self.store_id)


class StorePosition(FieldVisitBaseModel):
    """A coordinate override for a catalog store."""

    store_id: StoreId = Field(alias="tk")
    lat: Coordinate = None
    lng: Coordinate = None

    @property
    def key(self) -> str:
        return store_key(self.store_id)

    @property
    def is_valid(self) -> bool:
        return (
            self.lat is not None
            and self.lng is not None
            and math.isfinite(self.lat)
            and math.isfinite(self.lng)
        )


class Ledger(BaseModel):
    """The whole mutable dataset, persisted as one document.

    Collections are replaced wholesale on hydrate and written wholesale on
    persist; nothing is diffed or merged per entity.
    """

    model_config = ConfigDict(extra="ignore")

    visits: list[Visit] = Field(default_factory=list)
    tasks: list[Task] = Field(default_factory=list)
    plans: list[Plan] = Field(default_factory=list)
    store_positions: list[StorePosition] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _default_collections(cls, values: Any) -> Any:
        """Missing/``null`` collections become empty; malformed entries are dropped."""
        if isinstance(values, Ledger):
            values = {key: list(getattr(values, key)) for key in LEDGER_KEYS}
        if not isinstance(values, dict):
            return {}
        cleaned: dict[str, Any] = {}
        for key in LEDGER_KEYS:
            items = values.get(key)
            cleaned[key] = _parse_entries(key, items) if isinstance(items, list) else []
        return cleaned

    @classmethod
    def from_document(cls, document: Any) -> Ledger:
        return cls.model_validate(document)

    def to_document(self) -> dict[str, list[dict[str, Any]]]:
        """Serialize to the four-key wire document."""
        return self.model_dump(mode="json", by_alias=True)


_ENTRY_MODELS: dict[str, type[FieldVisitBaseModel]] = {
    "visits": Visit,
    "tasks": Task,
    "plans": Plan,
    "store_positions": StorePosition,
}


def _parse_entries(key: str, items: list[Any]) -> list[FieldVisitBaseModel]:
    """Validate entries one by one; malformed entries are dropped."""
    model = _ENTRY_MODELS[key]
    entries: list[FieldVisitBaseModel] = []
    for index, item in enumerate(items):
        if isinstance(item, model):
            entries.append(item)
            continue
        if not isinstance(item, dict):
            _logger.debug("Dropping %s[%d]: not an object", key, index)
            continue
        try:
            entries.append(model.model_validate(item))
        except ValidationError as exc:
            _logger.debug("Dropping %s[%d]: %s", key, index, exc.errors(include_url=False))
    return entries
