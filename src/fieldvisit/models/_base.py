"""Base model and shared field types for ledger documents.

Every ledger entity inherits from :class:`FieldVisitBaseModel` which
provides:

* aliasing between snake_case attributes and the wire keys of the
  backing store document (``tk``, ``user``, ``timestamp``),
* frozen instances, so a change is always a new entity swapped into the
  ledger rather than an in-place edit.

The annotated field types below coerce the loosely typed values that come
back from the backing store (strings for booleans, floats for ids, ISO
datetimes for dates) without raising.
"""

from __future__ import annotations

import datetime as dt
from typing import Annotated

from pydantic import BaseModel, BeforeValidator, ConfigDict

from fieldvisit.ingestion.normalize import (
    coerce_store_id,
    parse_date,
    parse_timestamp,
    safe_bool,
    safe_float,
    safe_str,
)

StoreId = Annotated[int | str, BeforeValidator(coerce_store_id)]
"""Store identifier as found in the catalog: numeric ids are ints."""

Flag = Annotated[bool, BeforeValidator(safe_bool)]
Text = Annotated[str, BeforeValidator(safe_str)]
CalendarDate = Annotated[dt.date | None, BeforeValidator(parse_date)]
Timestamp = Annotated[dt.datetime | None, BeforeValidator(parse_timestamp)]
Coordinate = Annotated[float | None, BeforeValidator(safe_float)]


class FieldVisitBaseModel(BaseModel):
    """Base for ledger entities."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )
