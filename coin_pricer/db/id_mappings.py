"""
Persistent coin type -> CoinGecko id mappings discovered during resolution.
"""
from __future__ import annotations

import sqlite3
import threading
from typing import Dict, Optional

from ..core.errors import CacheError
from ..timeutils import now_utc_iso


class IdMappingStore:
    """SQLite backing for CoinGeckoIdMap (coingecko_ids table)."""

    def __init__(self, conn: sqlite3.Connection, lock: Optional[threading.Lock] = None) -> None:
        self._conn = conn
        self._lock = lock or threading.Lock()

    def load_all(self) -> Dict[str, str]:
        with self._lock:
            try:
                rows = self._conn.execute("SELECT coin_type, coingecko_id FROM coingecko_ids").fetchall()
            except sqlite3.Error as exc:
                raise CacheError(f"Could not load CoinGecko ids: {exc}") from exc
        return {coin_type: cg_id for coin_type, cg_id in rows}

    def upsert(self, identifier: str, coingecko_id: str) -> None:
        with self._lock:
            try:
                self._conn.execute(
                    """
                    INSERT INTO coingecko_ids (coin_type, coingecko_id, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(coin_type) DO UPDATE SET
                        coingecko_id = excluded.coingecko_id,
                        updated_at = excluded.updated_at;
                    """,
                    (identifier, coingecko_id, now_utc_iso()),
                )
                self._conn.commit()
            except sqlite3.Error as exc:
                raise CacheError(f"Could not store CoinGecko id for {identifier}: {exc}") from exc
