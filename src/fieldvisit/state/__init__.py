"""State layer.

This package is the single source of truth for the in-memory catalog and
ledger, and for everything derived from them (presence, statistics).
"""
