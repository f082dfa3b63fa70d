"""
Price resolution: cache check, ordered source fallback, cache write-back.

PriceResolver is the only caller of price sources and the only code that
writes resolved prices through to the cache. It never raises: exhausted
chains, budget overruns and unexpected errors all surface as None.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .core.errors import CacheError
from .core.types import PriceQuery, SourceResult
from .db.price_store import PriceCacheStore
from .events import LoggingObserver, ResolutionObserver, safe_notify
from .providers.base import PriceSource
from .providers.identifiers import extract_symbol
from .timeutils import now_ms

logger = logging.getLogger(__name__)

DEFAULT_TTL_MS = 5 * 60 * 1000
DEFAULT_RESOLUTION_BUDGET_S = 60.0


class PriceResolver:
    """
    Resolve identifier -> USD price.

    overrides maps identifiers (the base asset and its aliases) to their own
    ordered source list; default_chain applies to every other identifier.
    Sources run strictly one at a time, stopping at the first valid price.
    A resolution_budget_s of None or 0 disables the overall budget.
    """

    def __init__(
        self,
        store: PriceCacheStore,
        default_chain: Sequence[PriceSource],
        *,
        overrides: Optional[Dict[str, Sequence[PriceSource]]] = None,
        observer: Optional[ResolutionObserver] = None,
        ttl_ms: int = DEFAULT_TTL_MS,
        resolution_budget_s: Optional[float] = DEFAULT_RESOLUTION_BUDGET_S,
        clock: Callable[[], int] = now_ms,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._default_chain: Tuple[PriceSource, ...] = tuple(default_chain)
        self._overrides: Dict[str, Tuple[PriceSource, ...]] = {
            k: tuple(v) for k, v in (overrides or {}).items()
        }
        self._observer = observer if observer is not None else LoggingObserver()
        self._ttl_ms = ttl_ms
        self._budget_s = resolution_budget_s
        self._clock = clock
        self._monotonic = monotonic

    @property
    def store(self) -> PriceCacheStore:
        return self._store

    @property
    def ttl_ms(self) -> int:
        return self._ttl_ms

    def chain_for(self, identifier: str) -> Tuple[PriceSource, ...]:
        return self._overrides.get(identifier, self._default_chain)

    def source_names(self, identifier: str) -> List[str]:
        return [s.source_name for s in self.chain_for(identifier)]

    def get_token_price(self, identifier: str) -> Optional[float]:
        """Fresh cached price, else the first valid live price, else None."""
        try:
            query = PriceQuery.at(identifier, self._clock)
            cached = self._cached_price(query)
            if cached is not None:
                safe_notify(self._observer, "on_cache_hit", identifier, cached)
                return cached
            return self._resolve_live(query.identifier)
        except Exception:
            logger.exception("Unexpected error resolving price for %s", identifier)
            return None

    def refresh(self, identifier: str, metadata: Optional[Dict[str, Any]] = None) -> Optional[float]:
        """
        Skip the cache check; resolve live and write back on success.

        metadata is merged into the single write-back (the base asset job
        uses it for name, symbol and decimals).
        """
        try:
            return self._resolve_live(identifier, metadata)
        except Exception:
            logger.exception("Unexpected error refreshing price for %s", identifier)
            return None

    def _cached_price(self, query: PriceQuery) -> Optional[float]:
        try:
            record = self._store.get(query.identifier)
        except CacheError as exc:
            logger.warning("Price cache read failed for %s, treating as miss: %s", query.identifier, exc)
            return None
        if record is not None and record.is_fresh(query.now_ms, self._ttl_ms):
            return record.price_usd
        return None

    def _resolve_live(self, identifier: str, metadata: Optional[Dict[str, Any]] = None) -> Optional[float]:
        label = extract_symbol(identifier)
        started = self._monotonic()
        for source in self.chain_for(identifier):
            name = source.source_name
            if self._budget_s and self._monotonic() - started >= self._budget_s:
                logger.warning(
                    "Resolution budget of %.1fs spent for %s, skipping %s and later sources",
                    self._budget_s, label, name,
                )
                break

            safe_notify(self._observer, "on_source_attempt", identifier, name)
            t0 = self._monotonic()
            result = self._ask(source, identifier)
            latency_ms = (self._monotonic() - t0) * 1000.0
            safe_notify(self._observer, "on_source_result", identifier, name, result, latency_ms)

            if result.is_valid():
                self._write_back(identifier, result.price, name, metadata)
                safe_notify(self._observer, "on_resolved", identifier, result.price, name)
                return result.price

        safe_notify(self._observer, "on_resolved", identifier, None, None)
        return None

    @staticmethod
    def _ask(source: PriceSource, identifier: str) -> SourceResult:
        # Sources must not raise; a buggy one is treated as unavailable.
        try:
            return source.resolve(identifier)
        except Exception as exc:
            logger.exception("Price source %s raised for %s", source.source_name, identifier)
            return SourceResult.unavailable(f"{type(exc).__name__}: {exc}")

    def _write_back(
        self, identifier: str, price: float, source_name: str, metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        try:
            self._store.put(identifier, price, {**(metadata or {}), "source": source_name})
        except CacheError as exc:
            logger.warning("Could not cache price for %s: %s", identifier, exc)
