"""Backing store service: the ledger document behind GET/POST, persisted to a file."""

from fieldvisit.server.app import create_app, run_server
from fieldvisit.server.storage import LedgerFileStore, VisitLog, merge_document

__all__ = ["LedgerFileStore", "VisitLog", "create_app", "merge_document", "run_server"]
