"""
Identifier -> CoinGecko id mapping owned by the CoinGecko source.

Lifecycle: seeded at startup from configured known ids (plus any persisted
entries), appended to during resolution when a search discovers an id, and
written through to an optional persistent store.
"""
from __future__ import annotations

import logging
import threading
from typing import Dict, Mapping, Optional, Protocol

logger = logging.getLogger(__name__)


class IdMappingPersistence(Protocol):
    """Optional persistent backing for discovered ids."""

    def load_all(self) -> Dict[str, str]: ...

    def upsert(self, identifier: str, coingecko_id: str) -> None: ...


class CoinGeckoIdMap:
    """Thread-safe identifier -> CoinGecko id table."""

    def __init__(
        self,
        known: Optional[Mapping[str, str]] = None,
        persistence: Optional[IdMappingPersistence] = None,
    ) -> None:
        self._lock = threading.Lock()
        self._persistence = persistence
        self._ids: Dict[str, str] = {}
        if persistence is not None:
            try:
                self._ids.update(persistence.load_all())
            except Exception as exc:
                logger.warning("Could not load persisted CoinGecko ids: %s", exc)
        # Configured ids win over anything persisted earlier.
        self._ids.update(dict(known or {}))

    def get(self, identifier: str) -> Optional[str]:
        with self._lock:
            return self._ids.get(identifier)

    def put(self, identifier: str, coingecko_id: str) -> None:
        """Record a discovered id; persistence failures are logged, never raised."""
        with self._lock:
            if self._ids.get(identifier) == coingecko_id:
                return
            self._ids[identifier] = coingecko_id
        logger.info("Mapped %s -> CoinGecko id %s", identifier, coingecko_id)
        if self._persistence is not None:
            try:
                self._persistence.upsert(identifier, coingecko_id)
            except Exception as exc:
                logger.warning("Could not persist CoinGecko id for %s: %s", identifier, exc)

    def snapshot(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._ids)

    def __contains__(self, identifier: object) -> bool:
        with self._lock:
            return identifier in self._ids

    def __len__(self) -> int:
        with self._lock:
            return len(self._ids)
