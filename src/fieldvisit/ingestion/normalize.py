"""Normalization helpers.

Centralizes defensive parsing of values coming from CSV rows, the backing
store document (which may have round-tripped through a spreadsheet) and the
local cache.
"""

from __future__ import annotations

import math
from datetime import date, datetime
from typing import Any

_TRUE_STRINGS = frozenset({"true", "1", "yes", "y", "on"})
_FALSE_STRINGS = frozenset({"false", "0", "no", "n", "off", ""})


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or value == "--":
        return None
    if isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result):
        return None
    return result


def float_or_nan(value: Any) -> float:
    """Parse a coordinate, propagating failure as ``NaN`` instead of raising."""
    parsed = safe_float(value)
    return math.nan if parsed is None else parsed


def safe_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in _TRUE_STRINGS:
            return True
        if normalized in _FALSE_STRINGS:
            return False
    return default


def safe_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def parse_date(value: Any) -> date | None:
    """Parse a calendar date.

    Accepts ``date``, ``datetime`` (date portion), ``YYYY-MM-DD`` strings and
    ISO datetime strings such as ``2026-10-05T21:00:00.000Z``. Anything else
    yields ``None``.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    if len(text) < 10:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def parse_timestamp(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def parse_store_id(raw: str) -> int | str:
    """Catalog id: an ``int`` when purely numeric, else the raw string."""
    text = raw.strip()
    if text.isascii() and text.isdigit():
        return int(text)
    return text


def coerce_store_id(value: Any) -> int | str:
    """Coerce an id read from a document into ``int`` or ``str``.

    Spreadsheet backends hand numbers back as floats (``12.0``); those are
    folded into ints so they compare equal to catalog ids.
    """
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return int(value)
        return str(value)
    if value is None:
        return ""
    return parse_store_id(str(value))


def store_key(value: Any) -> str:
    """Normalized identity of a store id, used for every id comparison."""
    return str(coerce_store_id(value))
