"""Window statistics for the summary bar and the daily dashboard."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, timedelta

from pydantic import BaseModel, ConfigDict

from fieldvisit._constants import RECENCY_WINDOW_DAYS
from fieldvisit.models.ledger import Visit
from fieldvisit.state.presence import is_within_window


class WindowSummary(BaseModel):
    """Unique stores observed inside the recency window."""

    model_config = ConfigDict(frozen=True)

    visited: int
    our: int
    other: int


class DailyCount(BaseModel):
    model_config = ConfigDict(frozen=True)

    day: date
    our: int = 0
    other: int = 0


def summarize_window(
    visits: Iterable[Visit],
    today: date,
    window_days: int = RECENCY_WINDOW_DAYS,
) -> WindowSummary:
    """Count unique stores with our / other presence observed in the window.

    ``visited`` counts stores with at least one presence observation; a
    visit that observed neither office does not count.
    """
    our: set[str] = set()
    other: set[str] = set()
    for visit in visits:
        if not is_within_window(visit.date, today, window_days):
            continue
        if visit.our_presence:
            our.add(visit.key)
        if visit.other_presence:
            other.add(visit.key)
    return WindowSummary(visited=len(our | other), our=len(our), other=len(other))


def daily_counts(
    visits: Iterable[Visit],
    today: date,
    days: int = RECENCY_WINDOW_DAYS,
) -> list[DailyCount]:
    """Per-day presence observation counts for the *days* days ending today, oldest first."""
    if days <= 0:
        return []
    first = today - timedelta(days=days - 1)
    our = [0] * days
    other = [0] * days
    for visit in visits:
        if visit.date is None:
            continue
        index = (visit.date - first).days
        if not 0 <= index < days:
            continue
        if visit.our_presence:
            our[index] += 1
        if visit.other_presence:
            other[index] += 1
    return [
        DailyCount(day=first + timedelta(days=i), our=our[i], other=other[i])
        for i in range(days)
    ]
