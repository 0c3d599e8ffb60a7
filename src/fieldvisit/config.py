"""Client and server configuration for fieldvisit."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from fieldvisit._constants import (
    DEFAULT_CATALOG_URL,
    DEFAULT_ENDPOINT_URL,
    DEFAULT_OUR_OFFICE,
    DEFAULT_POLL_INTERVAL,
    RECENCY_WINDOW_DAYS,
)
from fieldvisit.exceptions import FieldVisitConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(env_key: str, value: str, kind: type[int] | type[float]) -> int | float:
    try:
        return kind(value)
    except ValueError as exc:
        raise FieldVisitConfigError(f"{env_key} must be a {kind.__name__}, got {value!r}") from exc


def _default_cache_dir() -> Path:
    return Path.home() / ".cache" / "fieldvisit"


def _collect(
    env: Mapping[str, str],
    overrides: dict[str, Any],
    *,
    strings: dict[str, str],
    numbers: dict[str, tuple[str, type[int] | type[float]]],
    bools: dict[str, tuple[str, bool]],
) -> dict[str, Any]:
    """Map env vars onto field names; explicit overrides always win."""
    kwargs: dict[str, Any] = {}
    for env_key, field_name in strings.items():
        val = env.get(env_key)
        if val is not None and field_name not in overrides:
            kwargs[field_name] = val
    for env_key, (field_name, kind) in numbers.items():
        val = env.get(env_key)
        if val is not None and field_name not in overrides:
            kwargs[field_name] = _env_number(env_key, val, kind)
    for env_key, (field_name, default) in bools.items():
        if field_name not in overrides:
            kwargs[field_name] = _env_bool(env.get(env_key), default)
    kwargs.update(overrides)
    return kwargs


@dataclasses.dataclass(frozen=True)
class FieldVisitConfig:
    """Client configuration.

    Parameters
    ----------
    endpoint_url : str
        URL of the backing store document (``GET``/``POST``).
    catalog_url : str
        URL of the store catalog CSV, used when ``catalog_path`` is unset.
    catalog_path : str or None
        Local path of the store catalog CSV. Takes precedence over
        ``catalog_url``.
    cache_dir : Path
        Directory of the local cache that survives across sessions.
    our_office : str
        Office-name token identifying "our" office in catalog data
        (substring match).
    window_days : int
        Trailing recency window in whole days, inclusive.
    poll_interval : float
        Seconds between background refreshes.
    observer : str
        Default observer identity stamped on recorded visits.
    post_as_text : bool
        Send the ledger document as ``text/plain`` instead of
        ``application/json``. Some hosted script endpoints reject custom
        content types.
    """

    endpoint_url: str = DEFAULT_ENDPOINT_URL
    catalog_url: str = DEFAULT_CATALOG_URL
    catalog_path: str | None = None
    cache_dir: Path = dataclasses.field(default_factory=_default_cache_dir)
    our_office: str = DEFAULT_OUR_OFFICE
    window_days: int = RECENCY_WINDOW_DAYS
    poll_interval: float = DEFAULT_POLL_INTERVAL
    observer: str = ""
    post_as_text: bool = False

    def __post_init__(self) -> None:
        if self.window_days < 0:
            raise FieldVisitConfigError(f"window_days must be >= 0, got {self.window_days}")
        if self.poll_interval <= 0:
            raise FieldVisitConfigError(f"poll_interval must be > 0, got {self.poll_interval}")
        if not isinstance(self.cache_dir, Path):
            object.__setattr__(self, "cache_dir", Path(self.cache_dir).expanduser())

    @classmethod
    def from_env(cls, **overrides: Any) -> FieldVisitConfig:
        """Create configuration from ``FIELDVISIT_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        kwargs = _collect(
            os.environ,
            overrides,
            strings={
                "FIELDVISIT_ENDPOINT_URL": "endpoint_url",
                "FIELDVISIT_CATALOG_URL": "catalog_url",
                "FIELDVISIT_CATALOG_PATH": "catalog_path",
                "FIELDVISIT_CACHE_DIR": "cache_dir",
                "FIELDVISIT_OUR_OFFICE": "our_office",
                "FIELDVISIT_OBSERVER": "observer",
            },
            numbers={
                "FIELDVISIT_WINDOW_DAYS": ("window_days", int),
                "FIELDVISIT_POLL_INTERVAL": ("poll_interval", float),
            },
            bools={
                "FIELDVISIT_POST_AS_TEXT": ("post_as_text", False),
            },
        )
        return cls(**kwargs)


@dataclasses.dataclass(frozen=True)
class ServerConfig:
    """Backing store service configuration.

    Parameters
    ----------
    host, port : str, int
        Listen address.
    data_file : str
        JSON file holding the whole ledger document.
    catalog_file : str or None
        Store catalog CSV served at ``/stores.csv`` when set.
    visit_log_file : str or None
        JSON-lines file receiving ``append_visit`` actions. When unset
        those actions are rejected.
    """

    host: str = "0.0.0.0"
    port: int = 8080
    data_file: str = "data.json"
    catalog_file: str | None = None
    visit_log_file: str | None = None

    @classmethod
    def from_env(cls, **overrides: Any) -> ServerConfig:
        kwargs = _collect(
            os.environ,
            overrides,
            strings={
                "FIELDVISIT_SERVER_HOST": "host",
                "FIELDVISIT_DATA_FILE": "data_file",
                "FIELDVISIT_SERVER_CATALOG_FILE": "catalog_file",
                "FIELDVISIT_VISIT_LOG_FILE": "visit_log_file",
            },
            numbers={
                "FIELDVISIT_SERVER_PORT": ("port", int),
            },
            bools={},
        )
        return cls(**kwargs)
