"""Store catalog record."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from fieldvisit._constants import NO_OFFICES_LABEL
from fieldvisit.ingestion.normalize import store_key


@dataclass(slots=True)
class Store:
    """A retail location loaded from the catalog.

    Everything except ``lat``/``lng`` is static for the lifetime of the
    session; coordinates may be overridden by an editor action or by a
    position stored in the ledger.

    Parameters
    ----------
    store_id : int or str
        Stable identifier; an ``int`` when the catalog value is numeric.
    address : str
        Free-text address.
    lat, lng : float
        Coordinates. ``NaN`` when the catalog value did not parse.
    offices : tuple of str
        Affiliated office names, possibly empty.
    """

    store_id: int | str
    address: str = ""
    lat: float = math.nan
    lng: float = math.nan
    offices: tuple[str, ...] = field(default_factory=tuple)

    @property
    def key(self) -> str:
        return store_key(self.store_id)

    @property
    def has_coordinates(self) -> bool:
        """Whether the store can be placed on a map."""
        return math.isfinite(self.lat) and math.isfinite(self.lng)

    @property
    def offices_label(self) -> str:
        if not self.offices:
            return NO_OFFICES_LABEL
        return ", ".join(self.offices)

    def has_office(self, token: str) -> bool:
        """Whether any office name contains *token*."""
        return any(token in office for office in self.offices)
