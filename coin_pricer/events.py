"""
Resolution observers.

The resolver reports what it does through a ResolutionObserver instead of
logging inline, so callers can plug in logging, health tracking or test
recorders. Observer failures are logged and never affect a resolution.
"""
from __future__ import annotations

import logging
import threading
from typing import Dict, Iterable, List, Optional

from .core.types import SourceResult
from .providers.base import SourceHealth

logger = logging.getLogger(__name__)


class ResolutionObserver:
    """No-op base; override the events you care about."""

    def on_cache_hit(self, identifier: str, price: float) -> None:
        pass

    def on_source_attempt(self, identifier: str, source_name: str) -> None:
        pass

    def on_source_result(self, identifier: str, source_name: str, result: SourceResult, latency_ms: float) -> None:
        pass

    def on_resolved(self, identifier: str, price: Optional[float], source_name: Optional[str]) -> None:
        pass


def safe_notify(observer: Optional[ResolutionObserver], event: str, *args) -> None:
    """Call observer.<event>(*args); observer errors are logged and swallowed."""
    if observer is None:
        return
    try:
        getattr(observer, event)(*args)
    except Exception:
        logger.exception("Observer %s failed on %s", type(observer).__name__, event)


class LoggingObserver(ResolutionObserver):
    """Default observer: logs every event through the module logger."""

    def on_cache_hit(self, identifier: str, price: float) -> None:
        logger.debug("Cache hit for %s: %s", identifier, price)

    def on_source_attempt(self, identifier: str, source_name: str) -> None:
        logger.debug("Trying %s for %s", source_name, identifier)

    def on_source_result(self, identifier: str, source_name: str, result: SourceResult, latency_ms: float) -> None:
        if result.is_valid():
            logger.debug("%s priced %s at %s (%.0f ms)", source_name, identifier, result.price, latency_ms)
        else:
            logger.debug(
                "%s gave no price for %s: %s %s (%.0f ms)",
                source_name, identifier, result.status.value, result.reason, latency_ms,
            )

    def on_resolved(self, identifier: str, price: Optional[float], source_name: Optional[str]) -> None:
        if price is None:
            logger.warning("No price found for %s from any source", identifier)
        else:
            logger.info("Resolved %s = %s via %s", identifier, price, source_name)


class SourceHealthObserver(ResolutionObserver):
    """
    Aggregates per-source health (success resets, failures degrade).

    When a store is attached each update is written through with
    SourceHealthStore.upsert.
    """

    def __init__(self, store=None) -> None:
        self._store = store
        self._lock = threading.Lock()
        self._health: Dict[str, SourceHealth] = {}

    def on_source_result(self, identifier: str, source_name: str, result: SourceResult, latency_ms: float) -> None:
        with self._lock:
            health = self._health.setdefault(source_name, SourceHealth(source_name=source_name))
            if result.is_valid():
                health.record_success()
            else:
                health.record_failure(f"{identifier}: {result.reason or result.status.value}")
            snapshot = SourceHealth(**vars(health))
        if self._store is not None:
            self._store.upsert(snapshot)

    def get_health(self) -> Dict[str, SourceHealth]:
        with self._lock:
            return {name: SourceHealth(**vars(h)) for name, h in self._health.items()}


class CompositeObserver(ResolutionObserver):
    """Fans every event out to several observers; one failing observer does not stop the others."""

    def __init__(self, observers: Iterable[ResolutionObserver]) -> None:
        self._observers: List[ResolutionObserver] = list(observers)

    def _emit(self, event: str, *args) -> None:
        for obs in self._observers:
            safe_notify(obs, event, *args)

    def on_cache_hit(self, identifier: str, price: float) -> None:
        self._emit("on_cache_hit", identifier, price)

    def on_source_attempt(self, identifier: str, source_name: str) -> None:
        self._emit("on_source_attempt", identifier, source_name)

    def on_source_result(self, identifier: str, source_name: str, result: SourceResult, latency_ms: float) -> None:
        self._emit("on_source_result", identifier, source_name, result, latency_ms)

    def on_resolved(self, identifier: str, price: Optional[float], source_name: Optional[str]) -> None:
        self._emit("on_resolved", identifier, price, source_name)
