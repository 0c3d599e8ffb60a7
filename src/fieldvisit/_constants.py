"""Internal constants shared across the library."""

DEFAULT_ENDPOINT_URL = "http://localhost:8080/api/data"
DEFAULT_CATALOG_URL = "http://localhost:8080/stores.csv"
DEFAULT_OUR_OFFICE = "Максутов"

#: Trailing window (inclusive, in whole days) used to judge visit recency.
RECENCY_WINDOW_DAYS = 14

DEFAULT_POLL_INTERVAL = 60.0

#: Top-level collections of the ledger document, in wire order.
LEDGER_KEYS: tuple[str, ...] = ("visits", "tasks", "plans", "store_positions")

NO_OFFICES_LABEL = "Нет офисов"

# ------------------------------------------------------------------
# Marker palette (presence state -> CSS color)
# ------------------------------------------------------------------

COLOR_OUR = "#10B981"
COLOR_OTHER = "#3B82F6"
COLOR_NONE = "#9CA3AF"
COLOR_EDITING = "#F59E0B"
