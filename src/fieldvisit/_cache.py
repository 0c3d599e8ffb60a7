"""Local key-value cache surviving across sessions.

Each key is a JSON file inside the cache directory, so the ledger
collections (``visits``, ``tasks``, ``plans``, ``store_positions``) are
stored and loaded independently of each other.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

from fieldvisit._constants import LEDGER_KEYS

_logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class LocalCache:
    """File-backed key-value store.

    Reads never raise: a missing or corrupt entry yields the default.
    Writes raise :class:`OSError`; callers treat the cache as best effort.
    """

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise ValueError(f"invalid cache key: {key!r}")
        return self._directory / f"{key}.json"

    def get_item(self, key: str, default: Any = None) -> Any:
        path = self._path(key)
        if not path.exists():
            return default
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError):
            _logger.debug("Cache entry %s unreadable", key, exc_info=True)
            return default

    def set_item(self, key: str, value: Any) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(value, f, ensure_ascii=False, indent=2)

    def remove_item(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def load_document(self) -> dict[str, list[Any]]:
        """Read every ledger collection; each one independently defaults to ``[]``."""
        document: dict[str, list[Any]] = {}
        for key in LEDGER_KEYS:
            value = self.get_item(key, [])
            document[key] = value if isinstance(value, list) else []
        return document

    def store_document(self, document: dict[str, Any], keys: tuple[str, ...] = LEDGER_KEYS) -> None:
        for key in keys:
            self.set_item(key, document.get(key, []))
