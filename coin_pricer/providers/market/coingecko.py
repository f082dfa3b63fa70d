"""
CoinGecko market-data aggregator source.

Uses the public CoinGecko API (no authentication required):
  GET https://api.coingecko.com/api/v3/simple/price?ids={id}&vs_currencies=usd
  GET https://api.coingecko.com/api/v3/search?query={symbol}

Coin types are resolved to CoinGecko ids through CoinGeckoIdMap; when no id
is known the source asks the on-chain indexer for a cross-referenced id and
then falls back to a symbol search. Discovered ids are recorded in the map.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol

from ...core.errors import CoinPricerError
from ...core.types import ParsedPrice, SourceResult
from ..base import HttpPriceSource, http_unavailable
from ..http import HttpFetcher
from ..identifiers import extract_symbol, is_coin_type
from .id_map import CoinGeckoIdMap

logger = logging.getLogger(__name__)

COINGECKO_BASE_URL = "https://api.coingecko.com/api/v3"
DEFAULT_PLATFORM_HINT = "sui"


class CoinIdLookup(Protocol):
    """Anything that can cross-reference a coin type to a CoinGecko id."""

    def lookup_coingecko_id(self, identifier: str) -> Optional[str]: ...


def parse_simple_price(data: Any, coin_id: str) -> ParsedPrice:
    """{"<id>": {"usd": 1.23}} -> ParsedPrice."""
    if not isinstance(data, dict):
        return ParsedPrice.malformed(f"unexpected payload type {type(data).__name__}")
    entry = data.get(coin_id)
    if entry is None:
        return ParsedPrice.no_price(f"no entry for {coin_id}")
    if not isinstance(entry, dict):
        return ParsedPrice.malformed(f"entry for {coin_id} is {type(entry).__name__}")
    usd = entry.get("usd")
    if usd is None:
        return ParsedPrice.no_price(f"no usd price for {coin_id}")
    if isinstance(usd, bool) or not isinstance(usd, (int, float)):
        return ParsedPrice.malformed(f"usd price has type {type(usd).__name__}")
    return ParsedPrice.price(float(usd))


def pick_search_match(coins: List[Dict[str, Any]], symbol: str, platform_hint: str) -> Optional[str]:
    """
    Best CoinGecko id for symbol: exact symbol listed on a platform whose name
    contains platform_hint, else any exact symbol match.
    """
    symbol = symbol.lower()
    hint = platform_hint.lower()
    exact = [
        c for c in coins
        if isinstance(c, dict) and str(c.get("symbol") or "").lower() == symbol and c.get("id")
    ]
    for coin in exact:
        platforms = coin.get("platforms") or {}
        if isinstance(platforms, dict) and any(hint in str(p).lower() for p in platforms):
            return str(coin["id"])
    return str(exact[0]["id"]) if exact else None


class CoinGeckoPriceSource(HttpPriceSource):
    """General market price by CoinGecko id (known, cross-referenced, or searched)."""

    name = "coingecko"

    def __init__(
        self,
        fetcher: HttpFetcher,
        id_map: CoinGeckoIdMap,
        *,
        id_lookup: Optional[CoinIdLookup] = None,
        base_url: str = COINGECKO_BASE_URL,
        platform_hint: str = DEFAULT_PLATFORM_HINT,
        **kwargs: Any,
    ) -> None:
        super().__init__(fetcher, **kwargs)
        self._id_map = id_map
        self._id_lookup = id_lookup
        self._base_url = base_url.rstrip("/")
        self._platform_hint = platform_hint

    @property
    def id_map(self) -> CoinGeckoIdMap:
        return self._id_map

    def _attempt(self, identifier: str) -> SourceResult:
        known = self._id_map.get(identifier)
        if known:
            return self.price_by_id(known)
        if not is_coin_type(identifier):
            return self.price_by_id(identifier)

        result = self._via_indexer(identifier)
        if result is not None and result.is_valid():
            return result
        return self._via_search(identifier)

    def price_by_id(self, coin_id: str) -> SourceResult:
        resp = self._get(
            f"{self._base_url}/simple/price",
            params={"ids": coin_id, "vs_currencies": "usd"},
        )
        if not resp.ok:
            return http_unavailable(resp)
        return SourceResult.from_parsed(parse_simple_price(resp.json(), coin_id))

    def _via_indexer(self, identifier: str) -> Optional[SourceResult]:
        if self._id_lookup is None:
            return None
        try:
            coin_id = self._id_lookup.lookup_coingecko_id(identifier)
            if not coin_id:
                return None
            logger.debug("Indexer cross-reference %s -> %s", extract_symbol(identifier), coin_id)
            result = self.price_by_id(coin_id)
        except CoinPricerError as exc:
            logger.debug("Indexer id lookup failed for %s: %s", extract_symbol(identifier), exc)
            return None
        if result.is_valid():
            self._id_map.put(identifier, coin_id)
        return result

    def _via_search(self, identifier: str) -> SourceResult:
        symbol = extract_symbol(identifier).lower()
        resp = self._get(f"{self._base_url}/search", params={"query": symbol})
        if not resp.ok:
            return http_unavailable(resp)
        data = resp.json()
        coins = data.get("coins") if isinstance(data, dict) else None
        if not isinstance(coins, list) or not coins:
            return SourceResult.unavailable(f"no coins found for {symbol!r}")

        coin_id = pick_search_match(coins, symbol, self._platform_hint)
        if coin_id is None:
            return SourceResult.unavailable(f"no symbol match for {symbol!r}")

        result = self.price_by_id(coin_id)
        if result.is_valid():
            self._id_map.put(identifier, coin_id)
        return result
