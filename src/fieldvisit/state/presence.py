"""Visit-derived presence classification.

Pure functions: every input, including "today", is a parameter. Callers
own the clock and reflect the returned state into any presentation.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from enum import StrEnum

from fieldvisit._constants import (
    COLOR_EDITING,
    COLOR_NONE,
    COLOR_OTHER,
    COLOR_OUR,
    DEFAULT_OUR_OFFICE,
    RECENCY_WINDOW_DAYS,
)
from fieldvisit.ingestion.catalog import StoreCatalog
from fieldvisit.ingestion.normalize import store_key
from fieldvisit.models.ledger import Ledger, Visit
from fieldvisit.models.store import Store


class Presence(StrEnum):
    OUR = "OUR"
    OTHER = "OTHER"
    EDITING = "EDITING"
    NONE = "NONE"


_PRESENCE_COLORS: dict[Presence, str] = {
    Presence.OUR: COLOR_OUR,
    Presence.OTHER: COLOR_OTHER,
    Presence.EDITING: COLOR_EDITING,
    Presence.NONE: COLOR_NONE,
}


def days_since(visit_date: date | None, today: date) -> int | None:
    """Whole calendar days from *visit_date* to *today* (negative for future dates)."""
    if visit_date is None:
        return None
    return (today - visit_date).days


def is_within_window(visit_date: date | None, today: date, window_days: int = RECENCY_WINDOW_DAYS) -> bool:
    """``0 <= days_since <= window_days``; future and undated visits are outside."""
    days = days_since(visit_date, today)
    return days is not None and 0 <= days <= window_days


def recent_visits(
    store_id: object,
    visits: Iterable[Visit],
    today: date,
    window_days: int = RECENCY_WINDOW_DAYS,
) -> list[Visit]:
    key = store_key(store_id)
    return [v for v in visits if v.key == key and is_within_window(v.date, today, window_days)]


def has_our_office(store: Store, our_office: str = DEFAULT_OUR_OFFICE) -> bool:
    return store.has_office(our_office)


def has_other_offices(store: Store, our_office: str = DEFAULT_OUR_OFFICE) -> bool:
    return bool(store.offices) and not has_our_office(store, our_office)


def classify_presence(
    store_id: object,
    ledger: Ledger,
    catalog: StoreCatalog,
    today: date,
    active_edit_target: object | None = None,
    *,
    our_office: str = DEFAULT_OUR_OFFICE,
    window_days: int = RECENCY_WINDOW_DAYS,
) -> Presence:
    """Derive a store's presence state. First matching rule wins:

    1. the store is the active edit target -> ``EDITING``
    2. a visit inside the window observed our office -> ``OUR``
    3. a visit inside the window observed another office -> ``OTHER``
    4. the catalog lists our office -> ``OUR``
    5. the catalog lists any office -> ``OTHER``
    6. ``NONE``
    """
    key = store_key(store_id)
    if active_edit_target is not None and store_key(active_edit_target) == key:
        return Presence.EDITING

    recent = recent_visits(key, ledger.visits, today, window_days)
    if any(v.our_presence for v in recent):
        return Presence.OUR
    if any(v.other_presence for v in recent):
        return Presence.OTHER

    store = catalog.get(key)
    if store is not None:
        if has_our_office(store, our_office):
            return Presence.OUR
        if has_other_offices(store, our_office):
            return Presence.OTHER
    return Presence.NONE


def marker_color(presence: Presence) -> str:
    return _PRESENCE_COLORS[presence]
