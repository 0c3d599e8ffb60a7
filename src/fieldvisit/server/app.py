"""aiohttp application exposing the ledger document over GET/POST."""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from aiohttp import web

from fieldvisit.config import ServerConfig
from fieldvisit.exceptions import FieldVisitStorageError
from fieldvisit.server.storage import LedgerFileStore, VisitLog

_logger = logging.getLogger(__name__)

DATA_ROUTE = "/api/data"
CATALOG_ROUTE = "/stores.csv"

LEDGER_STORE = web.AppKey("ledger_store", LedgerFileStore)
VISIT_LOG = web.AppKey("visit_log", VisitLog)
CATALOG_FILE = web.AppKey("catalog_file", Path)

_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def _error(status: int, message: str) -> web.Response:
    return web.json_response({"success": False, "error": message}, status=status)


@web.middleware
async def cors_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    if request.method == "OPTIONS":
        response: web.StreamResponse = web.Response(status=200)
    else:
        try:
            response = await handler(request)
        except web.HTTPException as exc:
            exc.headers.update(_CORS_HEADERS)
            raise
    response.headers.update(_CORS_HEADERS)
    return response


async def get_data(request: web.Request) -> web.Response:
    store = request.app[LEDGER_STORE]
    return web.json_response(store.read(), dumps=lambda obj: json.dumps(obj, ensure_ascii=False))


async def post_data(request: web.Request) -> web.Response:
    """Accept the ledger document as JSON, whatever the declared content type."""
    text = await request.text()
    try:
        incoming: Any = json.loads(text)
    except json.JSONDecodeError as exc:
        return _error(400, f"Invalid JSON: {exc}")
    if not isinstance(incoming, dict):
        return _error(400, "Expected a JSON object")

    if incoming.get("action") == "append_visit":
        return _append_visit(request, incoming.get("visit"))

    store = request.app[LEDGER_STORE]
    try:
        store.update(incoming)
    except ValueError as exc:
        return _error(400, str(exc))
    except FieldVisitStorageError as exc:
        _logger.error("Error writing data: %s", exc)
        return _error(500, "Failed to write data")
    return web.json_response({"success": True})


def _append_visit(request: web.Request, visit: Any) -> web.Response:
    visit_log = request.app.get(VISIT_LOG)
    if visit_log is None:
        return _error(400, "Visit log is not enabled")
    if not isinstance(visit, dict):
        return _error(400, "'visit' must be an object")
    try:
        visit_log.append(visit)
    except FieldVisitStorageError as exc:
        _logger.error("Error appending visit log: %s", exc)
        return _error(500, "Failed to append visit log")
    return web.json_response({"success": True})


async def get_catalog(request: web.Request) -> web.FileResponse:
    path = request.app[CATALOG_FILE]
    if not path.is_file():
        raise web.HTTPNotFound(text="File not found")
    return web.FileResponse(path, headers={"Content-Type": "text/csv; charset=utf-8"})


async def _init_store(app: web.Application) -> None:
    store = app[LEDGER_STORE]
    store.ensure_exists()
    _logger.info("Ledger document: %s", store.path)


def create_app(config: ServerConfig) -> web.Application:
    app = web.Application(middlewares=[cors_middleware])
    app[LEDGER_STORE] = LedgerFileStore(config.data_file)
    if config.visit_log_file:
        app[VISIT_LOG] = VisitLog(config.visit_log_file)

    app.router.add_get(DATA_ROUTE, get_data)
    app.router.add_post(DATA_ROUTE, post_data)
    if config.catalog_file:
        app[CATALOG_FILE] = Path(config.catalog_file)
        app.router.add_get(CATALOG_ROUTE, get_catalog)

    app.on_startup.append(_init_store)
    return app


def run_server(config: ServerConfig) -> None:
    _logger.info("Serving on http://%s:%d%s", config.host, config.port, DATA_ROUTE)
    web.run_app(create_app(config), host=config.host, port=config.port, print=None)
