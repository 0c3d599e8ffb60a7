"""In-memory application state.

:class:`LedgerState` owns the store catalog, the ledger and the transient
edit selection. It is the only component that mutates them; persistence is
layered on top by :class:`fieldvisit.client.FieldVisitClient`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, datetime

from fieldvisit._constants import DEFAULT_OUR_OFFICE, RECENCY_WINDOW_DAYS
from fieldvisit.ingestion.catalog import StoreCatalog
from fieldvisit.ingestion.normalize import store_key
from fieldvisit.models.ledger import Ledger, Plan, StorePosition, Task, Visit
from fieldvisit.models.requests import (
    AssignTaskRequest,
    RecordVisitRequest,
    SchedulePlanRequest,
    UpdatePositionRequest,
)
from fieldvisit.state.presence import Presence, classify_presence

_logger = logging.getLogger(__name__)


def _visit_sort_key(visit: Visit) -> date:
    return visit.date if visit.date is not None else date.min


class LedgerState:
    """Catalog + ledger + edit selection for one client."""

    def __init__(
        self,
        catalog: StoreCatalog | None = None,
        ledger: Ledger | None = None,
        *,
        our_office: str = DEFAULT_OUR_OFFICE,
        window_days: int = RECENCY_WINDOW_DAYS,
    ) -> None:
        self.catalog = catalog if catalog is not None else StoreCatalog()
        self.ledger = ledger if ledger is not None else Ledger()
        self.active_edit_target: int | str | None = None
        self._our_office = our_office
        self._window_days = window_days

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def record_visit(self, request: RecordVisitRequest, recorded_at: datetime) -> Visit:
        """Prepend a visit; newest entries come first in storage order."""
        visit = Visit(
            store_id=request.store_id,
            date=request.date,
            observer=request.observer,
            comment=request.comment,
            our_presence=request.our_presence,
            other_presence=request.other_presence,
            recorded_at=recorded_at,
        )
        self.ledger.visits.insert(0, visit)
        return visit

    def schedule_plan(self, request: SchedulePlanRequest, recorded_at: datetime) -> Plan:
        plan = Plan(
            store_id=request.store_id,
            date=request.date,
            note=request.note,
            recorded_at=recorded_at,
        )
        self.ledger.plans.append(plan)
        return plan

    def assign_task(self, request: AssignTaskRequest) -> Task:
        task = Task(store_id=request.store_id, text=request.text)
        self.ledger.tasks.append(task)
        return task

    def complete_task(self, store_id: object) -> bool:
        """Mark the first not-done task of a store as done.

        Returns ``False`` (and changes nothing) when the store has no
        active task.
        """
        key = store_key(store_id)
        for index, task in enumerate(self.ledger.tasks):
            if task.key == key and not task.done:
                self.ledger.tasks[index] = task.model_copy(update={"done": True})
                return True
        return False

    def update_store_position(self, request: UpdatePositionRequest) -> StorePosition:
        """Move a store and record the override (one entry per store)."""
        if not self.catalog.update_position(request.store_id, request.lat, request.lng):
            _logger.debug("Position override for store %s not in catalog", request.store_id)

        position = StorePosition(store_id=request.store_id, lat=request.lat, lng=request.lng)
        key = store_key(request.store_id)
        positions = self.ledger.store_positions
        for index, existing in enumerate(positions):
            if existing.key == key:
                positions[index] = position
                break
        else:
            positions.append(position)
        return position

    def replace_data(self, ledger: Ledger) -> None:
        """Adopt visits, tasks and plans wholesale (positions untouched)."""
        self.ledger.visits = list(ledger.visits)
        self.ledger.tasks = list(ledger.tasks)
        self.ledger.plans = list(ledger.plans)

    def replace_positions(self, positions: Iterable[StorePosition]) -> int:
        """Adopt position overrides and apply the valid ones to the catalog."""
        self.ledger.store_positions = list(positions)
        return self.catalog.apply_positions(self.ledger.store_positions)

    # ------------------------------------------------------------------
    # Edit selection
    # ------------------------------------------------------------------

    def begin_edit(self, store_id: int | str) -> None:
        self.active_edit_target = store_id

    def end_edit(self) -> None:
        self.active_edit_target = None

    def toggle_edit(self, store_id: int | str) -> bool:
        """Select *store_id* for editing, or clear it if already selected.

        Returns whether the store is the edit target afterwards.
        """
        if self.active_edit_target is not None and store_key(self.active_edit_target) == store_key(store_id):
            self.end_edit()
            return False
        self.begin_edit(store_id)
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def visits_for(self, store_id: object) -> list[Visit]:
        """Visits of one store, newest date first; undated visits last."""
        key = store_key(store_id)
        visits = [v for v in self.ledger.visits if v.key == key]
        return sorted(visits, key=_visit_sort_key, reverse=True)

    def last_visit(self, store_id: object) -> Visit | None:
        visits = self.visits_for(store_id)
        return visits[0] if visits else None

    def active_task(self, store_id: object) -> Task | None:
        key = store_key(store_id)
        return next((t for t in self.ledger.tasks if t.key == key and not t.done), None)

    def plans_for(self, store_id: object) -> list[Plan]:
        key = store_key(store_id)
        return [p for p in self.ledger.plans if p.key == key]

    def presence(self, store_id: object, today: date) -> Presence:
        return classify_presence(
            store_id,
            self.ledger,
            self.catalog,
            today,
            self.active_edit_target,
            our_office=self._our_office,
            window_days=self._window_days,
        )

    def presence_map(self, today: date) -> dict[int | str, Presence]:
        """Presence of every catalog store, in catalog order."""
        return {store.store_id: self.presence(store.store_id, today) for store in self.catalog}
