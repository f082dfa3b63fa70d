"""
Price cache persistence.

SqlitePriceBackend is the raw row store over the tokens and price_history
tables. PriceCacheStore is the only writer of PriceRecord: it validates
prices, stamps them with the injected clock and answers freshness queries.
"""
from __future__ import annotations

import json
import logging
import sqlite3
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..core.errors import CacheError, ValidationError
from ..core.types import PriceRecord
from ..core.validation import is_valid_price
from ..timeutils import now_ms

logger = logging.getLogger(__name__)


def _load_metadata(raw: Optional[str]) -> Dict[str, Any]:
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except ValueError:
        logger.debug("Ignoring unreadable token metadata: %r", raw[:100])
        return {}
    return data if isinstance(data, dict) else {}


class SqlitePriceBackend:
    """
    Row store for last-known prices and price history.

    One connection shared across threads (check_same_thread=False) and
    serialised with a lock. sqlite3 errors surface as CacheError.
    """

    def __init__(self, conn: sqlite3.Connection, lock: Optional[threading.Lock] = None) -> None:
        self._conn = conn
        self._lock = lock or threading.Lock()

    def _execute(self, sql: str, params: Tuple[Any, ...] = (), *, commit: bool = False) -> List[tuple]:
        with self._lock:
            try:
                cur = self._conn.execute(sql, params)
                rows = cur.fetchall()
                if commit:
                    self._conn.commit()
                return rows
            except sqlite3.Error as exc:
                raise CacheError(f"Price store failure: {exc}") from exc

    def get_record(self, identifier: str) -> Optional[PriceRecord]:
        rows = self._execute(
            "SELECT coin_type, price_usd, last_update, metadata FROM tokens WHERE coin_type = ?",
            (identifier,),
        )
        if not rows:
            return None
        coin_type, price, last_update, metadata = rows[0]
        return PriceRecord(
            identifier=coin_type,
            price_usd=float(price or 0.0),
            last_update_ms=int(last_update or 0),
            metadata=_load_metadata(metadata),
        )

    def upsert_record(self, identifier: str, price: float, ts_ms: int, metadata: Dict[str, Any]) -> None:
        self._execute(
            """
            INSERT INTO tokens (coin_type, price_usd, last_update, metadata, source)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(coin_type) DO UPDATE SET
                price_usd = excluded.price_usd,
                last_update = excluded.last_update,
                metadata = excluded.metadata,
                source = excluded.source;
            """,
            (identifier, price, ts_ms, json.dumps(metadata, sort_keys=True), metadata.get("source")),
            commit=True,
        )

    def ensure_token(self, identifier: str) -> None:
        """Register a coin type with the unknown-price sentinel if it is not stored yet."""
        self._execute(
            "INSERT OR IGNORE INTO tokens (coin_type, price_usd, last_update, metadata) VALUES (?, 0, 0, '{}')",
            (identifier,),
            commit=True,
        )

    def list_unpriced(self) -> List[str]:
        """Coin types whose stored price is 0 or NULL."""
        rows = self._execute(
            "SELECT coin_type FROM tokens WHERE price_usd = 0 OR price_usd IS NULL ORDER BY coin_type"
        )
        return [r[0] for r in rows]

    def append_history(self, identifier: str, price: float, ts_ms: int) -> None:
        self._execute(
            "INSERT INTO price_history (coin_type, price_usd, ts_ms) VALUES (?, ?, ?)",
            (identifier, price, ts_ms),
            commit=True,
        )

    def history(self, identifier: str, since_ms: int) -> List[Tuple[int, float]]:
        """(ts_ms, price_usd) rows at or after since_ms, oldest first."""
        rows = self._execute(
            "SELECT ts_ms, price_usd FROM price_history WHERE coin_type = ? AND ts_ms >= ? ORDER BY ts_ms",
            (identifier, since_ms),
        )
        return [(int(ts), float(price)) for ts, price in rows]


class PriceCacheStore:
    """Validated, clock-stamped access to last-known prices."""

    def __init__(self, backend: SqlitePriceBackend, clock: Callable[[], int] = now_ms) -> None:
        self._backend = backend
        self._clock = clock

    @property
    def backend(self) -> SqlitePriceBackend:
        return self._backend

    def get(self, identifier: str) -> Optional[PriceRecord]:
        return self._backend.get_record(identifier)

    def put(self, identifier: str, price: float, metadata: Optional[Dict[str, Any]] = None) -> PriceRecord:
        """
        Upsert the price for identifier, stamped with the current clock time.

        New metadata keys are merged over the stored ones so a price refresh
        keeps descriptive fields (name, symbol, decimals). Raises
        ValidationError for prices the validator rejects.
        """
        if not is_valid_price(price):
            raise ValidationError(f"Refusing to cache invalid price {price!r} for {identifier}")
        existing = self._backend.get_record(identifier)
        merged: Dict[str, Any] = dict(existing.metadata) if existing is not None else {}
        merged.update(metadata or {})
        record = PriceRecord(
            identifier=identifier,
            price_usd=float(price),
            last_update_ms=self._clock(),
            metadata=merged,
        )
        self._backend.upsert_record(record.identifier, record.price_usd, record.last_update_ms, record.metadata)
        return record

    def is_fresh(self, identifier: str, ttl_ms: int) -> bool:
        return self.fresh_price(identifier, ttl_ms) is not None

    def fresh_price(self, identifier: str, ttl_ms: int) -> Optional[float]:
        """Stored price if it is positive and at most ttl_ms old, else None."""
        record = self._backend.get_record(identifier)
        if record is None or not record.is_fresh(self._clock(), ttl_ms):
            return None
        return record.price_usd
