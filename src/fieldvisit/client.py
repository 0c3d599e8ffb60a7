"""High-level async client for field-visit tracking."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from datetime import UTC, date, datetime
from typing import Any

import aiohttp

from fieldvisit._cache import LocalCache
from fieldvisit._transport import HttpTransport, Transport
from fieldvisit.config import FieldVisitConfig
from fieldvisit.exceptions import FieldVisitError
from fieldvisit.gateway import PersistenceGateway
from fieldvisit.ingestion.catalog import StoreCatalog, load_catalog, parse_catalog
from fieldvisit.models.ledger import Plan, StorePosition, Task, Visit
from fieldvisit.models.requests import (
    AssignTaskRequest,
    RecordVisitRequest,
    SchedulePlanRequest,
    StoreRequest,
    UpdatePositionRequest,
)
from fieldvisit.models.results import HydrateResult, PersistResult
from fieldvisit.state.ledger import LedgerState
from fieldvisit.state.presence import Presence
from fieldvisit.state.stats import DailyCount, WindowSummary, daily_counts, summarize_window

_logger = logging.getLogger(__name__)

PresenceMap = dict[int | str, Presence]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class FieldVisitClient:
    """Async client owning the application state and its persistence.

    Usage::

        async with FieldVisitClient(config) as client:
            await client.load_catalog()
            await client.hydrate()
            result = await client.record_visit(42, our_presence=True)

    Every mutation is applied in memory first, then the whole ledger is
    written to the backing store. The returned :class:`PersistResult` tells
    the caller whether the write reached the remote.
    """

    def __init__(
        self,
        config: FieldVisitConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        cache: LocalCache | None = None,
        clock: Callable[[], datetime] = _utcnow,
        today: Callable[[], date] = date.today,
        on_refresh: Callable[[PresenceMap], None] | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport = transport
        self._cache = cache if cache is not None else LocalCache(config.cache_dir)
        self._gateway: PersistenceGateway | None = None
        self._clock = clock
        self._today = today
        self._on_refresh = on_refresh
        self._poll_task: asyncio.Task[None] | None = None
        self.state = LedgerState(our_office=config.our_office, window_days=config.window_days)

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> FieldVisitClient:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpTransport(self._http_session, post_as_text=self._config.post_as_text)
        self._gateway = PersistenceGateway(self._transport, self._cache, self._config.endpoint_url)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop_polling()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
            self._transport = None
        self._gateway = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_gateway(self) -> PersistenceGateway:
        if self._gateway is None:
            raise FieldVisitError("Client not initialized. Use 'async with FieldVisitClient(...) as client:'")
        return self._gateway

    def _require_transport(self) -> Transport:
        self._require_gateway()
        assert self._transport is not None  # noqa: S101
        return self._transport

    async def _persist(self) -> PersistResult:
        return await self._require_gateway().persist(self.state)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load_catalog(self) -> int:
        """Load the store catalog from ``catalog_path`` or ``catalog_url``.

        Position overrides already held in the ledger are re-applied to the
        fresh catalog. Returns the number of stores loaded.
        """
        if self._config.catalog_path:
            stores = load_catalog(self._config.catalog_path)
        else:
            text = await self._require_transport().get_text(self._config.catalog_url)
            stores = parse_catalog(text)
        self.state.catalog = StoreCatalog(stores)
        self.state.catalog.apply_positions(self.state.ledger.store_positions)
        _logger.debug("Loaded %d stores", len(stores))
        return len(stores)

    async def hydrate(self) -> HydrateResult:
        return await self._require_gateway().hydrate(self.state)

    async def refresh(self) -> bool:
        """Re-read visits/tasks/plans and notify ``on_refresh``."""
        refreshed = await self._require_gateway().refresh(self.state)
        if refreshed and self._on_refresh is not None:
            self._on_refresh(self.presence_map())
        return refreshed

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def record_visit(
        self,
        store_id: int | str,
        visit_date: date | str | None = None,
        *,
        observer: str | None = None,
        comment: str = "",
        our_presence: bool = False,
        other_presence: bool = False,
    ) -> PersistResult:
        """Record a visit (dated today unless *visit_date* is given)."""
        request = RecordVisitRequest(
            store_id=store_id,
            date=visit_date if visit_date is not None else self._today(),
            observer=observer if observer is not None else self._config.observer,
            comment=comment,
            our_presence=our_presence,
            other_presence=other_presence,
        )
        self.state.record_visit(request, self._clock())
        return await self._persist()

    async def schedule_plan(self, store_id: int | str, plan_date: date | str, note: str = "") -> PersistResult:
        request = SchedulePlanRequest(store_id=store_id, date=plan_date, note=note)
        self.state.schedule_plan(request, self._clock())
        return await self._persist()

    async def assign_task(self, store_id: int | str, text: str) -> PersistResult:
        request = AssignTaskRequest(store_id=store_id, text=text)
        self.state.assign_task(request)
        return await self._persist()

    async def complete_task(self, store_id: int | str) -> PersistResult:
        """Complete the store's active task; a no-op (no write) when there is none."""
        request = StoreRequest(store_id=store_id)
        if not self.state.complete_task(request.store_id):
            return PersistResult(success=True, changed=False)
        return await self._persist()

    async def update_store_position(self, store_id: int | str, lat: float, lng: float) -> PersistResult:
        request = UpdatePositionRequest(store_id=store_id, lat=lat, lng=lng)
        self.state.update_store_position(request)
        return await self._persist()

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    def classify(self, store_id: int | str, today: date | None = None) -> Presence:
        return self.state.presence(store_id, today if today is not None else self._today())

    def presence_map(self, today: date | None = None) -> PresenceMap:
        return self.state.presence_map(today if today is not None else self._today())

    def summary(self, today: date | None = None) -> WindowSummary:
        return summarize_window(
            self.state.ledger.visits,
            today if today is not None else self._today(),
            self._config.window_days,
        )

    def daily_counts(self, today: date | None = None, days: int | None = None) -> list[DailyCount]:
        return daily_counts(
            self.state.ledger.visits,
            today if today is not None else self._today(),
            days if days is not None else self._config.window_days,
        )

    def visits_for(self, store_id: int | str) -> list[Visit]:
        return self.state.visits_for(store_id)

    def active_task(self, store_id: int | str) -> Task | None:
        return self.state.active_task(store_id)

    def plans_for(self, store_id: int | str) -> list[Plan]:
        return self.state.plans_for(store_id)

    def store_positions(self) -> list[StorePosition]:
        return list(self.state.ledger.store_positions)

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    def start_polling(self, interval: float | None = None) -> None:
        """Refresh every *interval* seconds (fixed, no backoff) until stopped."""
        self._require_gateway()
        if self.is_polling:
            return
        period = interval if interval is not None else self._config.poll_interval
        self._poll_task = asyncio.create_task(self._poll_loop(period))

    async def stop_polling(self) -> None:
        task = self._poll_task
        self._poll_task = None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _poll_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self.refresh()
            except Exception:
                _logger.exception("Polling refresh failed")
