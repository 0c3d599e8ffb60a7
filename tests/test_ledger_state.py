from __future__ import annotations

from datetime import UTC, date, datetime

import pytest
from pydantic import ValidationError

from fieldvisit.ingestion.catalog import StoreCatalog
from fieldvisit.models.ledger import Ledger, StorePosition, Task, Visit
from fieldvisit.models.requests import (
    AssignTaskRequest,
    RecordVisitRequest,
    SchedulePlanRequest,
    UpdatePositionRequest,
)
from fieldvisit.state.ledger import LedgerState
from fieldvisit.state.presence import Presence

NOW = datetime(2026, 10, 19, 9, 30, tzinfo=UTC)
TODAY = date(2026, 10, 19)


def _state() -> LedgerState:
    catalog = StoreCatalog.from_text("id,address,lat,lng,offices\n1,A,55,37,\n2,B,56,38,Other")
    return LedgerState(catalog)


def test_record_visit_prepends() -> None:
    state = _state()
    state.record_visit(RecordVisitRequest(store_id=1, date="2026-10-01"), NOW)
    second = state.record_visit(RecordVisitRequest(store_id=2, date="2026-10-02", comment="hi"), NOW)

    assert state.ledger.visits[0] is second
    assert second.comment == "hi"
    assert second.recorded_at == NOW
    assert [v.store_id for v in state.ledger.visits] == [2, 1]


def test_record_visit_requires_a_date() -> None:
    state = _state()

    with pytest.raises(ValidationError):
        RecordVisitRequest(store_id=1, date="")
    with pytest.raises(ValidationError):
        RecordVisitRequest(store_id="  ", date="2026-10-01")
    assert state.ledger.visits == []


def test_schedule_plan_appends() -> None:
    state = _state()
    state.schedule_plan(SchedulePlanRequest(store_id=1, date="2026-11-01", note="a"), NOW)
    state.schedule_plan(SchedulePlanRequest(store_id=1, date="2026-11-02"), NOW)

    assert [p.note for p in state.plans_for(1)] == ["a", ""]
    assert state.ledger.plans[1].date == date(2026, 11, 2)


def test_complete_task_flips_first_active_in_storage_order() -> None:
    state = _state()
    state.ledger.tasks = [
        Task(store_id=1, text="done already", done=True),
        Task(store_id=2, text="other store"),
        Task(store_id=1, text="first"),
        Task(store_id=1, text="second"),
    ]

    assert state.complete_task("1") is True
    assert [t.done for t in state.ledger.tasks] == [True, False, True, False]
    assert state.active_task(1).text == "second"


def test_complete_task_is_idempotent_without_active_task() -> None:
    state = _state()
    state.ledger.tasks = [Task(store_id=1, text="t", done=True)]
    before = list(state.ledger.tasks)

    assert state.complete_task(1) is False
    assert state.complete_task(1) is False
    assert state.ledger.tasks == before
    assert state.active_task(1) is None


def test_assign_task_appends_active_task() -> None:
    state = _state()
    state.assign_task(AssignTaskRequest(store_id=2, text="Check shelf"))

    assert state.active_task(2) == Task(store_id=2, text="Check shelf", done=False)
    with pytest.raises(ValidationError):
        AssignTaskRequest(store_id=2, text="   ")


def test_update_store_position_moves_store_and_upserts_override() -> None:
    state = _state()
    state.update_store_position(UpdatePositionRequest(store_id=1, lat=50.5, lng=30.5))
    state.update_store_position(UpdatePositionRequest(store_id="1", lat=51.0, lng=31.0))

    store = state.catalog.get(1)
    assert (store.lat, store.lng) == (51.0, 31.0)
    assert state.ledger.store_positions == [StorePosition(store_id=1, lat=51.0, lng=31.0)]


def test_update_store_position_rejects_non_finite() -> None:
    with pytest.raises(ValidationError):
        UpdatePositionRequest(store_id=1, lat=float("nan"), lng=1.0)


def test_replace_data_keeps_positions() -> None:
    state = _state()
    state.update_store_position(UpdatePositionRequest(store_id=1, lat=1.0, lng=2.0))
    incoming = Ledger(visits=[Visit(store_id=2, date=TODAY)], store_positions=[])

    state.replace_data(incoming)

    assert len(state.ledger.visits) == 1
    assert len(state.ledger.store_positions) == 1


def test_visits_for_sorts_newest_first() -> None:
    state = _state()
    state.ledger.visits = [
        Visit(store_id=1, date=date(2026, 10, 1), comment="old"),
        Visit.model_validate({"tk": 1, "date": "garbage", "comment": "undated"}),
        Visit(store_id=1, date=date(2026, 10, 5), comment="new"),
        Visit(store_id=2, date=date(2026, 10, 9), comment="elsewhere"),
    ]

    assert [v.comment for v in state.visits_for(1)] == ["new", "old", "undated"]
    assert state.last_visit(1).comment == "new"
    assert state.last_visit(3) is None


def test_edit_target_toggles_presence() -> None:
    state = _state()

    assert state.presence(2, TODAY) == Presence.OTHER
    assert state.toggle_edit(2) is True
    assert state.presence(2, TODAY) == Presence.EDITING
    assert state.toggle_edit("2") is False
    assert state.active_edit_target is None
    assert state.presence(2, TODAY) == Presence.OTHER


def test_presence_map_covers_catalog_in_order() -> None:
    state = _state()
    state.record_visit(RecordVisitRequest(store_id=1, date=TODAY, our_presence=True), NOW)

    assert state.presence_map(TODAY) == {1: Presence.OUR, 2: Presence.OTHER}
