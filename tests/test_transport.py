from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from pathlib import Path

import aiohttp
import pytest
from aiohttp import test_utils, web

from fieldvisit._cache import LocalCache
from fieldvisit._transport import HttpTransport
from fieldvisit.exceptions import FieldVisitTransportError
from fieldvisit.gateway import PersistenceGateway
from fieldvisit.models.requests import RecordVisitRequest
from fieldvisit.models.results import HydrateSource
from fieldvisit.state.ledger import LedgerState


async def _slow(request: web.Request) -> web.Response:
    await asyncio.sleep(1)
    return web.json_response({"success": True})


async def _undecodable(request: web.Request) -> web.Response:
    return web.Response(body=b'{"visits": ["\xff"]}', content_type="application/json", charset="utf-8")


async def _not_found(request: web.Request) -> web.Response:
    return web.Response(status=404, text="nope")


def _app() -> web.Application:
    app = web.Application()
    app.router.add_get("/slow", _slow)
    app.router.add_post("/slow", _slow)
    app.router.add_get("/undecodable", _undecodable)
    app.router.add_get("/missing", _not_found)
    return app


@pytest.mark.asyncio
async def test_timeout_becomes_transport_error() -> None:
    async with (
        test_utils.TestServer(_app()) as server,
        aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=0.2)) as session,
    ):
        transport = HttpTransport(session)

        with pytest.raises(FieldVisitTransportError, match="timed out"):
            await transport.get_document(str(server.make_url("/slow")))


@pytest.mark.asyncio
async def test_undecodable_body_becomes_transport_error() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        transport = HttpTransport(session)

        with pytest.raises(FieldVisitTransportError, match="Undecodable"):
            await transport.get_document(str(server.make_url("/undecodable")))


@pytest.mark.asyncio
async def test_http_status_is_reported() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        transport = HttpTransport(session)

        with pytest.raises(FieldVisitTransportError) as excinfo:
            await transport.get_document(str(server.make_url("/missing")))

    assert excinfo.value.status_code == 404


@pytest.mark.asyncio
async def test_persist_timeout_keeps_changes_in_cache(tmp_path: Path) -> None:
    cache = LocalCache(tmp_path)
    state = LedgerState()
    state.record_visit(RecordVisitRequest(store_id=1, date="2026-10-19"), datetime(2026, 10, 19, 9, tzinfo=UTC))

    async with (
        test_utils.TestServer(_app()) as server,
        aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=0.2)) as session,
    ):
        gateway = PersistenceGateway(HttpTransport(session), cache, str(server.make_url("/slow")))
        result = await gateway.persist(state)

    assert result.success is False
    assert cache.get_item("visits")[0]["tk"] == 1


@pytest.mark.asyncio
async def test_hydrate_falls_back_on_undecodable_body(tmp_path: Path) -> None:
    cache = LocalCache(tmp_path)
    cache.set_item("visits", [{"tk": 4, "date": "2026-10-18"}])
    state = LedgerState()

    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        gateway = PersistenceGateway(HttpTransport(session), cache, str(server.make_url("/undecodable")))
        result = await gateway.hydrate(state)

    assert result.source is HydrateSource.CACHE
    assert [v.store_id for v in state.ledger.visits] == [4]
