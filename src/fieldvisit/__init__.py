"""fieldvisit - Field-visit tracking for retail locations: presence model, async client and JSON backing store."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("fieldvisit")
except PackageNotFoundError:
    __version__ = "0+local"
from fieldvisit.client import FieldVisitClient
from fieldvisit.config import FieldVisitConfig, ServerConfig
from fieldvisit.exceptions import (
    FieldVisitConfigError,
    FieldVisitError,
    FieldVisitStorageError,
    FieldVisitTransportError,
)
from fieldvisit.ingestion.catalog import StoreCatalog, load_catalog, parse_catalog
from fieldvisit.models import (
    HydrateResult,
    HydrateSource,
    Ledger,
    PersistResult,
    Plan,
    Store,
    StorePosition,
    Task,
    Visit,
)
from fieldvisit.state.ledger import LedgerState
from fieldvisit.state.presence import Presence, classify_presence, marker_color

__all__ = [
    "__version__",
    "FieldVisitClient",
    "FieldVisitConfig",
    "FieldVisitConfigError",
    "FieldVisitError",
    "FieldVisitStorageError",
    "FieldVisitTransportError",
    "HydrateResult",
    "HydrateSource",
    "Ledger",
    "LedgerState",
    "PersistResult",
    "Plan",
    "Presence",
    "ServerConfig",
    "Store",
    "StoreCatalog",
    "StorePosition",
    "Task",
    "Visit",
    "classify_presence",
    "load_catalog",
    "marker_color",
    "parse_catalog",
]
