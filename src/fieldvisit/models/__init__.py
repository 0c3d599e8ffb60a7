"""Data models for fieldvisit."""

from fieldvisit.models.ledger import Ledger, Plan, StorePosition, Task, Visit
from fieldvisit.models.requests import (
    AssignTaskRequest,
    RecordVisitRequest,
    SchedulePlanRequest,
    StoreRequest,
    UpdatePositionRequest,
)
from fieldvisit.models.results import HydrateResult, HydrateSource, PersistResult
from fieldvisit.models.store import Store

__all__ = [
    "AssignTaskRequest",
    "HydrateResult",
    "HydrateSource",
    "Ledger",
    "PersistResult",
    "Plan",
    "RecordVisitRequest",
    "SchedulePlanRequest",
    "Store",
    "StorePosition",
    "StoreRequest",
    "Task",
    "UpdatePositionRequest",
    "Visit",
]
