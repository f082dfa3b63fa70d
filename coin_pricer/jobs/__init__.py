"""
Job API: engine context plus the periodic price jobs.

The CLI uses this module instead of wiring the db and providers packages
itself. Owns the SQLite connection, migrations, the price store and the
resolver. Scheduling the jobs is left to the caller (cron, systemd timer).
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .. import config
from ..core.errors import CacheError
from ..db.health import SourceHealthStore
from ..db.id_mappings import IdMappingStore
from ..db.migrations import run_migrations
from ..db.price_store import PriceCacheStore, SqlitePriceBackend
from ..events import CompositeObserver, LoggingObserver, SourceHealthObserver
from ..providers.base import PriceSource
from ..providers.defaults import build_chains, create_default_registry
from ..providers.http import HttpFetcher
from ..resolver import PriceResolver
from ..timeutils import now_ms

logger = logging.getLogger(__name__)


@dataclass
class EngineContext:
    """Holds the DB connection, store and resolver. Use as context manager or call close()."""

    conn: sqlite3.Connection
    store: PriceCacheStore
    resolver: PriceResolver
    health_store: SourceHealthStore
    health: SourceHealthObserver
    fetcher: Optional[HttpFetcher] = None
    clock: Callable[[], int] = now_ms
    _closed: bool = field(default=False, repr=False)

    def close(self) -> None:
        """Close the DB connection and HTTP session. Idempotent."""
        if self._closed:
            return
        try:
            if self.fetcher is not None:
                self.fetcher.close()
            self.conn.close()
        finally:
            self._closed = True

    def __enter__(self) -> EngineContext:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if exc_val is not None:
            try:
                self.conn.rollback()
            except sqlite3.Error:
                logger.debug("Rollback failed while closing engine", exc_info=True)
        self.close()


def _apply_pragmas(conn: sqlite3.Connection, db_path: str) -> None:
    """busy_timeout from config; WAL for file databases."""
    conn.execute(f"PRAGMA busy_timeout={int(config.db_busy_timeout_ms())}")
    if db_path != ":memory:":
        conn.execute("PRAGMA journal_mode=WAL")


def open_engine(
    db_path: Optional[str] = None,
    *,
    default_chain: Optional[Sequence[PriceSource]] = None,
    overrides: Optional[Dict[str, Sequence[PriceSource]]] = None,
    fetcher: Optional[HttpFetcher] = None,
    clock: Callable[[], int] = now_ms,
    ttl_ms: Optional[int] = None,
    resolution_budget_s: Optional[float] = None,
) -> EngineContext:
    """
    Open DB, run migrations, create the store, health tracking and resolver.

    Use as: with open_engine(db_path) as ctx: ...
    If default_chain is given it is used instead of the configured sources
    (for tests); overrides then defaults to none.
    ttl_ms and resolution_budget_s default to config; a budget of 0 disables it.
    """
    path = db_path or config.db_path()
    conn = sqlite3.connect(path, check_same_thread=False)
    _apply_pragmas(conn, path)
    run_migrations(conn)

    lock = threading.Lock()
    store = PriceCacheStore(SqlitePriceBackend(conn, lock), clock=clock)
    health_store = SourceHealthStore(conn, lock)
    health = SourceHealthObserver(health_store)

    if default_chain is None:
        setup = create_default_registry(fetcher, id_persistence=IdMappingStore(conn, lock))
        fetcher = setup.fetcher
        chains = build_chains(setup)
        default_chain = chains.pop("default")
        overrides = chains if overrides is None else overrides

    budget = config.resolution_budget_s() if resolution_budget_s is None else resolution_budget_s
    resolver = PriceResolver(
        store,
        default_chain,
        overrides=overrides,
        observer=CompositeObserver([LoggingObserver(), health]),
        ttl_ms=config.cache_ttl_ms() if ttl_ms is None else ttl_ms,
        resolution_budget_s=budget,
        clock=clock,
    )
    return EngineContext(
        conn=conn,
        store=store,
        resolver=resolver,
        health_store=health_store,
        health=health,
        fetcher=fetcher,
        clock=clock,
    )


@dataclass(frozen=True)
class RefreshSummary:
    total: int
    updated: int
    failed: int


def update_base_asset_price(ctx: EngineContext) -> Optional[float]:
    """
    Live-resolve the network base asset, bypassing the cache.

    On success the single write-back carries the base asset's descriptive
    metadata and a price_history row is appended. Storage failures are
    logged; the resolved price is still returned. Returns the price or None.
    """
    net = config.network()
    base = str(net["base_asset"])
    price = ctx.resolver.refresh(
        base,
        metadata={
            "decimals": int(net["base_decimals"]),
            "name": net["base_name"],
            "symbol": net["base_symbol"],
        },
    )
    if price is None:
        logger.warning("Base asset price update failed for %s", base)
        return None

    try:
        ctx.store.backend.append_history(base, price, ctx.clock())
    except CacheError as exc:
        logger.warning("Could not record price history for %s: %s", base, exc)
    logger.info("Base asset %s price updated: $%s", net["base_symbol"], price)
    return price


def refresh_unpriced_tokens(ctx: EngineContext) -> RefreshSummary:
    """Resolve every stored coin type whose price is still the 0/NULL sentinel."""
    pending = ctx.store.backend.list_unpriced()
    if not pending:
        logger.info("No unpriced tokens to update")
        return RefreshSummary(total=0, updated=0, failed=0)

    logger.info("Updating prices for %d unpriced tokens", len(pending))
    updated = 0
    failed = 0
    for identifier in pending:
        price = ctx.resolver.get_token_price(identifier)
        if price is not None:
            updated += 1
        else:
            failed += 1
    summary = RefreshSummary(total=len(pending), updated=updated, failed=failed)
    logger.info("Unpriced token refresh: %d updated, %d failed", summary.updated, summary.failed)
    return summary


def base_asset_history(ctx: EngineContext, minutes: int = 60) -> List[Tuple[int, float]]:
    """(ts_ms, price_usd) history of the base asset over the last `minutes`."""
    since = ctx.clock() - int(minutes) * 60 * 1000
    return ctx.store.backend.history(config.base_asset(), since)


__all__ = [
    "EngineContext",
    "RefreshSummary",
    "open_engine",
    "update_base_asset_price",
    "refresh_unpriced_tokens",
    "base_asset_history",
]
