"""Ingestion layer.

This package contains the parsers that turn external inputs (the store
catalog CSV, backing store documents) into normalized domain objects.
"""

__all__: list[str] = []
