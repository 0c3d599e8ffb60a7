"""Command-line entry point.

Every command reads ``FIELDVISIT_*`` environment variables (see
:class:`fieldvisit.config.FieldVisitConfig`). Mutating commands hydrate the
ledger first, so the document written back is the full current one.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import date
from typing import Any

from fieldvisit.client import FieldVisitClient
from fieldvisit.config import FieldVisitConfig, ServerConfig
from fieldvisit.exceptions import FieldVisitError, FieldVisitTransportError
from fieldvisit.models.results import PersistResult
from fieldvisit.server import run_server
from fieldvisit.state.presence import marker_color

_logger = logging.getLogger("fieldvisit.cli")


def _iso_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {value!r}") from exc


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="fieldvisit", description="Track field visits to retail locations.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the backing store service")
    serve.add_argument("--host", help="Listen address (default: FIELDVISIT_SERVER_HOST or 0.0.0.0)")
    serve.add_argument("--port", type=int, help="Listen port (default: FIELDVISIT_SERVER_PORT or 8080)")
    serve.add_argument("--data-file", help="Ledger JSON file")
    serve.add_argument("--catalog-file", help="Store catalog CSV to serve at /stores.csv")
    serve.add_argument("--visit-log-file", help="JSON-lines file for append_visit actions")

    status = sub.add_parser("status", help="Print presence for every store")
    status.add_argument("--today", type=_iso_date, help="Evaluate as of this date (default: today)")
    status.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")

    stats = sub.add_parser("stats", help="Print window statistics")
    stats.add_argument("--today", type=_iso_date, help="Evaluate as of this date (default: today)")
    stats.add_argument("--days", type=int, help="Days in the daily breakdown (default: window size)")

    visit = sub.add_parser("visit", help="Record a visit")
    visit.add_argument("store")
    visit.add_argument("--date", type=_iso_date, help="Visit date (default: today)")
    visit.add_argument("--our", action="store_true", help="Our office was present")
    visit.add_argument("--other", action="store_true", help="Another office was present")
    visit.add_argument("--comment", default="")
    visit.add_argument("--observer", help="Observer name (default: FIELDVISIT_OBSERVER)")

    plan = sub.add_parser("plan", help="Schedule a visit")
    plan.add_argument("store")
    plan.add_argument("--date", type=_iso_date, required=True)
    plan.add_argument("--note", default="")

    task = sub.add_parser("task", help="Assign a task to a store")
    task.add_argument("store")
    task.add_argument("text")

    complete = sub.add_parser("complete", help="Complete a store's active task")
    complete.add_argument("store")

    move = sub.add_parser("move", help="Override a store's coordinates")
    move.add_argument("store")
    move.add_argument("lat", type=float)
    move.add_argument("lng", type=float)

    return parser.parse_args(argv)


def _report(result: PersistResult) -> int:
    if not result.changed:
        print("Nothing to change.")
        return 0
    if result.success:
        print("Saved.")
        return 0
    print(f"Saved locally only, remote not updated: {result.error}", file=sys.stderr)
    return 1


async def _prepare(client: FieldVisitClient) -> None:
    try:
        await client.load_catalog()
    except (FieldVisitTransportError, OSError) as exc:
        _logger.warning("Store catalog unavailable: %s", exc)
    hydrated = await client.hydrate()
    if not hydrated.from_remote:
        print(f"Remote unavailable, working from local cache: {hydrated.error}", file=sys.stderr)


def _status_rows(client: FieldVisitClient, today: date | None) -> list[dict[str, Any]]:
    presence = client.presence_map(today)
    rows: list[dict[str, Any]] = []
    for store in client.state.catalog:
        state = presence[store.store_id]
        task = client.active_task(store.store_id)
        rows.append(
            {
                "id": store.store_id,
                "address": store.address,
                "offices": list(store.offices),
                "presence": str(state),
                "color": marker_color(state),
                "task": task.text if task is not None else None,
            }
        )
    return rows


async def _run(args: argparse.Namespace) -> int:
    config = FieldVisitConfig.from_env()
    async with FieldVisitClient(config) as client:
        await _prepare(client)

        if args.command == "status":
            rows = _status_rows(client, args.today)
            if args.json_mode:
                print(json.dumps(rows, indent=2, ensure_ascii=False))
            else:
                for row in rows:
                    task = f"  [task: {row['task']}]" if row["task"] else ""
                    print(f"{row['id']!s:>8}  {row['presence']:<7}  {row['address']}{task}")
            return 0

        if args.command == "stats":
            summary = client.summary(args.today)
            print(f"Visited: {summary.visited} | Ours: {summary.our} | Others: {summary.other}")
            for day in client.daily_counts(args.today, args.days):
                print(f"{day.day.isoformat()}  ours={day.our}  others={day.other}")
            return 0

        if args.command == "visit":
            result = await client.record_visit(
                args.store,
                args.date,
                observer=args.observer,
                comment=args.comment,
                our_presence=args.our,
                other_presence=args.other,
            )
        elif args.command == "plan":
            result = await client.schedule_plan(args.store, args.date, args.note)
        elif args.command == "task":
            result = await client.assign_task(args.store, args.text)
        elif args.command == "complete":
            result = await client.complete_task(args.store)
        elif args.command == "move":
            result = await client.update_store_position(args.store, args.lat, args.lng)
        else:
            raise FieldVisitError(f"Unknown command: {args.command}")
        return _report(result)


def _serve(args: argparse.Namespace) -> int:
    overrides = {
        "host": args.host,
        "port": args.port,
        "data_file": args.data_file,
        "catalog_file": args.catalog_file,
        "visit_log_file": args.visit_log_file,
    }
    config = ServerConfig.from_env(**{k: v for k, v in overrides.items() if v is not None})
    run_server(config)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if args.command == "serve":
        return _serve(args)
    try:
        return asyncio.run(_run(args))
    except FieldVisitError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    except ValueError as exc:
        print(f"invalid input: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
