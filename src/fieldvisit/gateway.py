"""Persistence gateway between the in-memory ledger and the backing store.

Read-modify-write with whole-document semantics:

* ``hydrate`` adopts the remote document wholesale (or the local cache when
  the remote is unreachable),
* ``persist`` sends the entire ledger on every mutation,
* ``refresh`` re-reads only visits/tasks/plans for background polling.

There is no merge and no replay queue. A client whose writes failed keeps
its changes in memory and in the local cache; the next successful persist
carries them, but a hydrate against a remote that another writer has
updated in the meantime discards them (last full write wins).
"""

from __future__ import annotations

import logging
from typing import Any

from fieldvisit._cache import LocalCache
from fieldvisit._constants import LEDGER_KEYS
from fieldvisit._transport import Transport
from fieldvisit.exceptions import FieldVisitTransportError
from fieldvisit.models.ledger import Ledger
from fieldvisit.models.results import HydrateResult, HydrateSource, PersistResult
from fieldvisit.state.ledger import LedgerState

_logger = logging.getLogger(__name__)

_DATA_KEYS: tuple[str, ...] = ("visits", "tasks", "plans")


class PersistenceGateway:
    """Reconciles a :class:`LedgerState` with a remote JSON endpoint."""

    def __init__(self, transport: Transport, cache: LocalCache, endpoint_url: str) -> None:
        self._transport = transport
        self._cache = cache
        self._endpoint_url = endpoint_url

    @property
    def endpoint_url(self) -> str:
        return self._endpoint_url

    async def _fetch_document(self) -> dict[str, Any]:
        document = await self._transport.get_document(self._endpoint_url)
        if "error" in document and not any(key in document for key in LEDGER_KEYS):
            raise FieldVisitTransportError(
                f"Backing store reported an error: {document['error']}",
                endpoint=self._endpoint_url,
            )
        return document

    def _mirror(self, document: dict[str, Any], keys: tuple[str, ...] = LEDGER_KEYS) -> None:
        try:
            self._cache.store_document(document, keys)
        except OSError:
            _logger.debug("Local cache write failed", exc_info=True)

    async def hydrate(self, state: LedgerState) -> HydrateResult:
        """Populate *state* from the remote, else from the local cache."""
        try:
            document = await self._fetch_document()
        except FieldVisitTransportError as exc:
            _logger.warning("Remote ledger unavailable, using local cache: %s", exc)
            cached = Ledger.from_document(self._cache.load_document())
            state.replace_data(cached)
            state.replace_positions(cached.store_positions)
            return HydrateResult(source=HydrateSource.CACHE, error=str(exc))

        ledger = Ledger.from_document(document)
        state.replace_data(ledger)
        applied = state.replace_positions(ledger.store_positions)
        _logger.debug(
            "Hydrated %d visits, %d tasks, %d plans, %d positions applied",
            len(ledger.visits),
            len(ledger.tasks),
            len(ledger.plans),
            applied,
        )
        self._mirror(ledger.to_document())
        return HydrateResult(source=HydrateSource.REMOTE)

    async def refresh(self, state: LedgerState) -> bool:
        """Re-read visits, tasks and plans; positions are not reconciled.

        On failure the in-memory state is left as it is.
        """
        try:
            document = await self._fetch_document()
        except FieldVisitTransportError as exc:
            _logger.warning("Refresh failed: %s", exc)
            return False
        ledger = Ledger.from_document(document)
        state.replace_data(ledger)
        self._mirror(ledger.to_document(), _DATA_KEYS)
        return True

    async def persist(self, state: LedgerState) -> PersistResult:
        """Write the whole ledger to the remote and mirror it locally.

        Failures are reported in the result, never raised.
        """
        document = state.ledger.to_document()
        try:
            await self._transport.post_document(self._endpoint_url, document)
        except FieldVisitTransportError as exc:
            _logger.warning("Ledger not synced, kept in local cache: %s", exc)
            self._mirror(document)
            return PersistResult(success=False, error=str(exc))
        self._mirror(document)
        return PersistResult(success=True)
