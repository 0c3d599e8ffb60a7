"""File persistence for the backing store service.

The whole ledger lives in one JSON document. Writes merge by presence:
a top-level collection included in the request replaces the stored one,
an omitted (or ``null``) collection keeps its stored value.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from fieldvisit._constants import LEDGER_KEYS
from fieldvisit.exceptions import FieldVisitStorageError
from fieldvisit.ingestion.normalize import safe_bool

_logger = logging.getLogger(__name__)


def empty_document() -> dict[str, list[Any]]:
    return {key: [] for key in LEDGER_KEYS}


def normalize_document(data: Any) -> dict[str, list[Any]]:
    """Every ledger key present, defaulting to an empty list."""
    document = empty_document()
    if isinstance(data, dict):
        for key in LEDGER_KEYS:
            value = data.get(key)
            if isinstance(value, list):
                document[key] = value
    return document


def merge_document(current: dict[str, list[Any]], incoming: dict[str, Any]) -> dict[str, list[Any]]:
    """Merge-by-presence of *incoming* over *current*.

    Raises :class:`ValueError` when an included collection is not a list.
    """
    merged = normalize_document(current)
    for key in LEDGER_KEYS:
        value = incoming.get(key)
        if value is None:
            continue
        if not isinstance(value, list):
            raise ValueError(f"'{key}' must be a list")
        merged[key] = value
    return merged


class LedgerFileStore:
    """Single-file JSON store for the ledger document."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def ensure_exists(self) -> None:
        """Create the file with an empty document if it is missing."""
        if self._path.exists():
            return
        self.write(empty_document())

    def read(self) -> dict[str, list[Any]]:
        """Return the stored document; an unreadable file yields an empty one."""
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError):
            _logger.exception("Error reading ledger document %s", self._path)
            return empty_document()
        return normalize_document(data)

    def write(self, document: dict[str, list[Any]]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as f:
                json.dump(document, f, ensure_ascii=False, indent=2)
        except (OSError, TypeError, ValueError) as exc:
            raise FieldVisitStorageError(f"Failed to write {self._path}: {exc}", path=str(self._path)) from exc

    def update(self, incoming: dict[str, Any]) -> dict[str, list[Any]]:
        """Read, merge *incoming* by presence, write back. Returns the stored document."""
        merged = merge_document(self.read(), incoming)
        self.write(merged)
        return merged


class VisitLog:
    """Append-only JSON-lines log of individual visit submissions."""

    FIELDS: tuple[str, ...] = ("user", "tk", "date", "our_presence", "other_presence", "comment")

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def append(self, visit: dict[str, Any], *, now: datetime | None = None) -> dict[str, Any]:
        entry: dict[str, Any] = {"recorded_at": (now or datetime.now(UTC)).isoformat()}
        for field in self.FIELDS:
            value = visit.get(field)
            if field in ("our_presence", "other_presence"):
                entry[field] = safe_bool(value)
            else:
                entry[field] = "" if value is None else str(value)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry, ensure_ascii=False) + "\n")
        except OSError as exc:
            raise FieldVisitStorageError(f"Failed to append to {self._path}: {exc}", path=str(self._path)) from exc
        return entry

    def read_all(self) -> list[dict[str, Any]]:
        if not self._path.exists():
            return []
        entries: list[dict[str, Any]] = []
        with open(self._path, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if line:
                    entries.append(json.loads(line))
        return entries
