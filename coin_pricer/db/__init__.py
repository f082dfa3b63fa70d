"""
Database layer: migrations, price cache, source health and id mappings.

All price writes go through PriceCacheStore so every stored price is
validated and timestamped.
"""

from __future__ import annotations

from .health import SourceHealthStore
from .id_mappings import IdMappingStore
from .migrations import run_migrations
from .price_store import PriceCacheStore, SqlitePriceBackend

__all__ = [
    "run_migrations",
    "PriceCacheStore",
    "SqlitePriceBackend",
    "SourceHealthStore",
    "IdMappingStore",
]
