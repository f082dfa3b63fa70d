"""
Idempotent database migrations.

All schema changes use CREATE TABLE IF NOT EXISTS and guarded ALTER TABLE
so they can be re-run safely at any time.
"""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)


def _safe_add_column(conn: sqlite3.Connection, table: str, column: str, col_type: str) -> None:
    """Add a column if it doesn't already exist."""
    try:
        conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {col_type};")
        conn.commit()
        logger.debug("Added column %s.%s", table, column)
    except sqlite3.OperationalError:
        pass


def run_migrations(conn: sqlite3.Connection) -> None:
    """
    Apply all schema migrations idempotently.

    Safe to call on every startup; only creates/alters what's missing.
    """
    # Last-known price per coin type. price_usd = 0 means "unknown".
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS tokens (
            coin_type TEXT PRIMARY KEY,
            price_usd REAL,
            last_update INTEGER,
            metadata TEXT
        );
        """
    )
    conn.execute("CREATE INDEX IF NOT EXISTS idx_tokens_price ON tokens(price_usd);")

    # Source that produced the current price
    _safe_add_column(conn, "tokens", "source", "TEXT")

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS price_history (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            coin_type TEXT NOT NULL,
            price_usd REAL NOT NULL,
            ts_ms INTEGER NOT NULL
        );
        """
    )
    conn.execute("CREATE INDEX IF NOT EXISTS idx_price_history_coin_ts ON price_history(coin_type, ts_ms);")

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS coingecko_ids (
            coin_type TEXT PRIMARY KEY,
            coingecko_id TEXT NOT NULL,
            updated_at TEXT
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS source_health (
            source_name TEXT PRIMARY KEY,
            status TEXT NOT NULL DEFAULT 'OK',
            last_ok_at TEXT,
            fail_count INTEGER NOT NULL DEFAULT 0,
            last_error TEXT,
            updated_at TEXT
        );
        """
    )

    conn.commit()
    logger.debug("Migrations complete")
