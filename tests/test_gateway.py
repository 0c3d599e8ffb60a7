"""Tests for hydrate / refresh / persist against a fake backing store."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

import pytest

from fieldvisit._cache import LocalCache
from fieldvisit.exceptions import FieldVisitTransportError
from fieldvisit.gateway import PersistenceGateway
from fieldvisit.ingestion.catalog import StoreCatalog
from fieldvisit.models.ledger import Ledger, Visit
from fieldvisit.models.requests import RecordVisitRequest, UpdatePositionRequest
from fieldvisit.models.results import HydrateSource
from fieldvisit.state.ledger import LedgerState

URL = "https://backend.test/api/data"
NOW = datetime(2026, 10, 19, 9, 0, tzinfo=UTC)


@dataclass
class FakeBackend:
    """In-memory stand-in for the remote document endpoint."""

    document: dict[str, Any] = field(default_factory=dict)
    online: bool = True
    posts: list[dict[str, Any]] = field(default_factory=list)

    def _check(self, url: str) -> None:
        if not self.online:
            raise FieldVisitTransportError("connection refused", endpoint=url)

    async def get_document(self, url: str) -> dict[str, Any]:
        self._check(url)
        return copy.deepcopy(self.document)

    async def post_document(self, url: str, document: Mapping[str, Any]) -> dict[str, Any]:
        self._check(url)
        self.posts.append(copy.deepcopy(dict(document)))
        self.document = copy.deepcopy(dict(document))
        return {"success": True}

    async def get_text(self, url: str) -> str:
        self._check(url)
        return ""


def _state() -> LedgerState:
    return LedgerState(StoreCatalog.from_text("id,address,lat,lng,offices\n1,A,10,20,\n2,B,30,40,Other"))


def _gateway(backend: FakeBackend, tmp_path: Path) -> tuple[PersistenceGateway, LocalCache]:
    cache = LocalCache(tmp_path / "cache")
    return PersistenceGateway(backend, cache, URL), cache


@pytest.mark.asyncio
async def test_hydrate_adopts_remote_and_applies_positions(tmp_path: Path) -> None:
    backend = FakeBackend(
        document={
            "visits": [{"tk": 1, "date": "2026-10-18", "our_presence": "true"}],
            "tasks": [{"tk": 2, "text": "Check", "done": False}],
            "store_positions": [
                {"tk": 1, "lat": 11.0, "lng": 21.0},
                {"tk": 2, "lat": "bad", "lng": 41.0},
            ],
        }
    )
    gateway, cache = _gateway(backend, tmp_path)
    state = _state()

    result = await gateway.hydrate(state)

    assert result.source is HydrateSource.REMOTE
    assert state.ledger.visits[0].our_presence is True
    assert state.ledger.plans == []
    assert (state.catalog.get(1).lat, state.catalog.get(1).lng) == (11.0, 21.0)
    assert (state.catalog.get(2).lat, state.catalog.get(2).lng) == (30.0, 40.0)
    assert cache.get_item("tasks") == [{"tk": 2, "text": "Check", "done": False}]


@pytest.mark.asyncio
async def test_hydrate_falls_back_to_cache(tmp_path: Path) -> None:
    backend = FakeBackend(online=False)
    gateway, cache = _gateway(backend, tmp_path)
    cache.set_item("visits", [{"tk": 2, "date": "2026-10-10", "other_presence": True}])
    cache.set_item("store_positions", [{"tk": 2, "lat": 31.0, "lng": 41.0}])
    state = _state()

    result = await gateway.hydrate(state)

    assert result.source is HydrateSource.CACHE
    assert "connection refused" in (result.error or "")
    assert [v.store_id for v in state.ledger.visits] == [2]
    assert state.ledger.tasks == []
    assert state.catalog.get(2).lat == 31.0


@pytest.mark.asyncio
async def test_hydrate_skips_entries_without_store_id(tmp_path: Path) -> None:
    backend = FakeBackend(
        document={
            "visits": [
                {"date": "2026-10-18", "our_presence": True},
                {"tk": 2, "date": "2026-10-18", "other_presence": True},
            ]
        }
    )
    gateway, _ = _gateway(backend, tmp_path)
    state = _state()

    result = await gateway.hydrate(state)

    assert result.source is HydrateSource.REMOTE
    assert [v.store_id for v in state.ledger.visits] == [2]


@pytest.mark.asyncio
async def test_cache_fallback_skips_entries_without_store_id(tmp_path: Path) -> None:
    backend = FakeBackend(online=False)
    gateway, cache = _gateway(backend, tmp_path)
    cache.set_item("visits", [{"date": "2026-10-18", "our_presence": True}, {"tk": 1, "date": "2026-10-17"}])
    state = _state()

    result = await gateway.hydrate(state)

    assert result.source is HydrateSource.CACHE
    assert [v.store_id for v in state.ledger.visits] == [1]


@pytest.mark.asyncio
async def test_refresh_skips_entries_without_store_id(tmp_path: Path) -> None:
    backend = FakeBackend(document={"tasks": [{"text": "orphan"}, {"tk": 1, "text": "kept"}]})
    gateway, _ = _gateway(backend, tmp_path)
    state = _state()

    assert await gateway.refresh(state) is True
    assert [t.text for t in state.ledger.tasks] == ["kept"]


@pytest.mark.asyncio
async def test_error_document_counts_as_failure(tmp_path: Path) -> None:
    backend = FakeBackend(document={"error": "Sheet not found"})
    gateway, _ = _gateway(backend, tmp_path)

    result = await gateway.hydrate(_state())

    assert result.source is HydrateSource.CACHE
    assert "Sheet not found" in (result.error or "")


@pytest.mark.asyncio
async def test_persist_sends_whole_document(tmp_path: Path) -> None:
    backend = FakeBackend()
    gateway, cache = _gateway(backend, tmp_path)
    state = _state()
    state.record_visit(RecordVisitRequest(store_id=1, date="2026-10-19", our_presence=True), NOW)

    result = await gateway.persist(state)

    assert result.success is True
    assert set(backend.posts[0]) == {"visits", "tasks", "plans", "store_positions"}
    assert backend.posts[0]["visits"][0]["tk"] == 1
    assert cache.get_item("visits") == backend.posts[0]["visits"]


@pytest.mark.asyncio
async def test_failed_persist_keeps_state_and_cache(tmp_path: Path) -> None:
    backend = FakeBackend(online=False)
    gateway, cache = _gateway(backend, tmp_path)
    state = _state()
    state.record_visit(RecordVisitRequest(store_id=1, date="2026-10-19"), NOW)

    result = await gateway.persist(state)

    assert result.success is False
    assert result.error
    assert len(state.ledger.visits) == 1
    assert len(cache.get_item("visits")) == 1


@pytest.mark.asyncio
async def test_refresh_replaces_data_but_not_positions(tmp_path: Path) -> None:
    backend = FakeBackend()
    gateway, cache = _gateway(backend, tmp_path)
    state = _state()
    state.update_store_position(UpdatePositionRequest(store_id=1, lat=5.0, lng=6.0))
    backend.document = {
        "visits": [{"tk": 2, "date": "2026-10-19"}],
        "store_positions": [{"tk": 1, "lat": 99.0, "lng": 99.0}],
    }

    assert await gateway.refresh(state) is True

    assert [v.store_id for v in state.ledger.visits] == [2]
    assert state.catalog.get(1).lat == 5.0
    assert state.ledger.store_positions[0].lat == 5.0
    assert cache.get_item("store_positions") is None


@pytest.mark.asyncio
async def test_failed_refresh_leaves_state(tmp_path: Path) -> None:
    backend = FakeBackend(online=False)
    gateway, _ = _gateway(backend, tmp_path)
    state = _state()
    state.ledger = Ledger(visits=[Visit(store_id=1, date=date(2026, 10, 1))])

    assert await gateway.refresh(state) is False
    assert len(state.ledger.visits) == 1


@pytest.mark.asyncio
async def test_unsynced_changes_lost_when_another_writer_wins(tmp_path: Path) -> None:
    """Last full write wins: local-only changes do not survive a later hydrate."""
    backend = FakeBackend()
    gateway_a, _ = _gateway(backend, tmp_path / "a")
    gateway_b, _ = _gateway(backend, tmp_path / "b")
    state_a, state_b = _state(), _state()
    await gateway_a.hydrate(state_a)
    await gateway_b.hydrate(state_b)

    backend.online = False
    state_a.record_visit(RecordVisitRequest(store_id=1, date="2026-10-19", comment="from A"), NOW)
    assert (await gateway_a.persist(state_a)).success is False

    backend.online = True
    state_b.record_visit(RecordVisitRequest(store_id=2, date="2026-10-19", comment="from B"), NOW)
    assert (await gateway_b.persist(state_b)).success is True

    await gateway_a.hydrate(state_a)

    assert [v.comment for v in state_a.ledger.visits] == ["from B"]


def test_gateway_exposes_endpoint(tmp_path: Path) -> None:
    gateway, _ = _gateway(FakeBackend(), tmp_path)

    assert gateway.endpoint_url == URL
