"""Store catalog loading.

The catalog is a comma-delimited text resource::

    id,address,lat,lng,offices
    1,"123 Main, St",55.1,37.2,"OfficeA,OfficeB"

Line 1 is a header and is discarded. Quoted fields may contain literal
commas; quote characters are stripped, not unescaped (``""`` is not an
escaped quote). Parsing never raises: unparseable coordinates become
``NaN`` and rows with fewer than four fields are skipped.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator
from pathlib import Path

from fieldvisit.ingestion.normalize import float_or_nan, parse_store_id, store_key
from fieldvisit.models.ledger import StorePosition
from fieldvisit.models.store import Store

_logger = logging.getLogger(__name__)

_LINE_SPLIT = re.compile(r"\r?\n")
_MIN_FIELDS = 4


def split_catalog_line(line: str) -> list[str]:
    """Split one row on commas that are outside double quotes."""
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)
    fields.append("".join(current).strip())
    return fields


def _parse_offices(raw: str) -> tuple[str, ...]:
    text = raw.replace('"', "")
    return tuple(name.strip() for name in text.split(",") if name.strip())


def parse_catalog_row(line: str) -> Store | None:
    """Parse one data row; ``None`` when it has fewer than four fields."""
    values = split_catalog_line(line)
    if len(values) < _MIN_FIELDS:
        return None
    return Store(
        store_id=parse_store_id(values[0]),
        address=values[1],
        lat=float_or_nan(values[2]),
        lng=float_or_nan(values[3]),
        offices=_parse_offices(values[4]) if len(values) > _MIN_FIELDS else (),
    )


def parse_catalog(text: str) -> list[Store]:
    """Parse catalog text into stores, in file order."""
    lines = [line for line in _LINE_SPLIT.split(text.lstrip("\ufeff")) if line.strip()]
    if len(lines) < 2:
        return []

    stores: list[Store] = []
    for number, line in enumerate(lines[1:], start=2):
        store = parse_catalog_row(line)
        if store is None:
            _logger.debug("Skipping catalog row %d: fewer than %d fields", number, _MIN_FIELDS)
            continue
        stores.append(store)
    return stores


def load_catalog(path: str | Path) -> list[Store]:
    """Read and parse a catalog file."""
    text = Path(path).read_text(encoding="utf-8-sig")
    return parse_catalog(text)


class StoreCatalog:
    """Ordered store collection with lookup by normalized id.

    The catalog is authoritative for static fields (address, offices);
    coordinates may be overridden from the ledger.
    """

    def __init__(self, stores: Iterable[Store] = ()) -> None:
        self._stores: list[Store] = []
        self._by_key: dict[str, Store] = {}
        for store in stores:
            self._stores.append(store)
            # First occurrence wins lookups for duplicated ids.
            self._by_key.setdefault(store.key, store)

    @classmethod
    def from_text(cls, text: str) -> StoreCatalog:
        return cls(parse_catalog(text))

    def __iter__(self) -> Iterator[Store]:
        return iter(self._stores)

    def __len__(self) -> int:
        return len(self._stores)

    def __contains__(self, store_id: object) -> bool:
        return store_key(store_id) in self._by_key

    def get(self, store_id: object) -> Store | None:
        return self._by_key.get(store_key(store_id))

    def update_position(self, store_id: object, lat: float, lng: float) -> bool:
        """Overwrite a store's coordinates. Returns ``False`` for unknown ids."""
        store = self.get(store_id)
        if store is None:
            return False
        store.lat = lat
        store.lng = lng
        return True

    def apply_positions(self, positions: Iterable[StorePosition]) -> int:
        """Apply coordinate overrides; invalid entries leave the store untouched.

        Returns the number of stores updated.
        """
        applied = 0
        for position in positions:
            if not position.is_valid:
                _logger.debug("Ignoring invalid position override for store %s", position.store_id)
                continue
            assert position.lat is not None and position.lng is not None  # noqa: S101
            if self.update_position(position.store_id, position.lat, position.lng):
                applied += 1
        return applied
