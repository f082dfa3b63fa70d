"""
Dexscreener pair-search price sources.

Uses the public Dexscreener API (no authentication required):
  GET https://api.dexscreener.com/latest/dex/search?q={query}

Response shape (fields used):
  {"pairs": [{"chainId": "sui", "dexId": "cetus",
              "baseToken": {"address": ..., "symbol": ...},
              "quoteToken": {"address": ..., "symbol": ...},
              "priceUsd": "1.23", "liquidity": {"usd": 12345.6}}, ...]}
"pairs" may be null when nothing matches.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ...core.errors import ParseError
from ...core.types import ParsedPrice, SourceResult
from ...core.validation import is_valid_price, to_float
from ..base import HttpPriceSource, http_unavailable, safe_get
from ..http import FetchResponse, HttpFetcher
from ..identifiers import extract_contract_address
from ..resilience import RetryConfig

logger = logging.getLogger(__name__)

DEX_BASE_URL = "https://api.dexscreener.com"
DEFAULT_CHAIN_ID = "sui"


def parse_pairs(data: Any) -> List[Dict[str, Any]]:
    """Extract pair dicts from a search payload. null pairs -> []."""
    if not isinstance(data, dict):
        raise ParseError(f"Unexpected Dex response type: {type(data).__name__}")
    pairs = data.get("pairs")
    if pairs is None:
        return []
    if not isinstance(pairs, list):
        raise ParseError(f"Unexpected Dex pairs type: {type(pairs).__name__}")
    return [p for p in pairs if isinstance(p, dict)]


def pair_price(pair: Dict[str, Any]) -> Optional[float]:
    return to_float(pair.get("priceUsd"))


def pair_liquidity(pair: Dict[str, Any]) -> float:
    liq = to_float(safe_get(pair, "liquidity.usd"))
    return liq if liq is not None and math.isfinite(liq) else 0.0


def _describe(pair: Dict[str, Any]) -> str:
    return f"dex={pair.get('dexId')} liq={pair_liquidity(pair):.0f}"


def scan_any_price(pairs: Iterable[Dict[str, Any]]) -> ParsedPrice:
    """First pair carrying a usable USD price."""
    for pair in pairs:
        price = pair_price(pair)
        if is_valid_price(price):
            return ParsedPrice.price(price, _describe(pair))
    return ParsedPrice.no_price("no pair with a usable price")


def select_best_pair(pairs: Sequence[Dict[str, Any]], chain_id: str) -> ParsedPrice:
    """
    Highest-liquidity pair on chain_id (pairs without chainId are accepted).

    When no pair on the chain has positive liquidity, or the best one has no
    usable price, every returned pair is scanned for any usable price.
    """
    if not pairs:
        return ParsedPrice.no_price("no pairs")
    chain_lower = chain_id.lower()
    on_chain = [
        p for p in pairs
        if (str(p.get("chainId") or "").strip().lower() in ("", chain_lower))
        and pair_liquidity(p) > 0
    ]
    if on_chain:
        best = max(on_chain, key=pair_liquidity)
        price = pair_price(best)
        if is_valid_price(price):
            return ParsedPrice.price(price, _describe(best))
        logger.debug("Best %s pair has no usable price (%s), scanning all pairs", chain_id, _describe(best))
    return scan_any_price(pairs)


def select_base_pair(
    pairs: Sequence[Dict[str, Any]],
    base_symbol: str,
    base_addresses: Sequence[str],
) -> ParsedPrice:
    """Prefer a pair quoted directly in the base asset, else any pair with a usable price."""
    if not pairs:
        return ParsedPrice.no_price("no pairs")
    addresses = set(base_addresses)
    for pair in pairs:
        quote_address = safe_get(pair, "quoteToken.address")
        quote_symbol = safe_get(pair, "quoteToken.symbol")
        if quote_address in addresses or quote_symbol == base_symbol:
            price = pair_price(pair)
            if is_valid_price(price):
                return ParsedPrice.price(price, f"{base_symbol} pair {_describe(pair)}")
    return scan_any_price(pairs)


class _DexscreenerSearch(HttpPriceSource):
    def __init__(
        self,
        fetcher: HttpFetcher,
        *,
        base_url: str = DEX_BASE_URL,
        chain_id: str = DEFAULT_CHAIN_ID,
        **kwargs: Any,
    ) -> None:
        super().__init__(fetcher, **kwargs)
        self._base_url = base_url.rstrip("/")
        self._chain_id = chain_id

    def _search(self, query: str) -> FetchResponse:
        return self._get(f"{self._base_url}/latest/dex/search", params={"q": query})


class DexscreenerSearchSource(_DexscreenerSearch):
    """Pair search by full coin type, falling back to the package address."""

    name = "dexscreener"

    def _attempt(self, identifier: str) -> SourceResult:
        resp = self._search(identifier)
        if not resp.ok:
            return http_unavailable(resp)
        pairs = parse_pairs(resp.json())

        if not pairs:
            contract = extract_contract_address(identifier)
            if contract != identifier:
                logger.debug("No pairs for full type, trying contract %s", contract)
                resp = self._search(contract)
                if not resp.ok:
                    return http_unavailable(resp)
                pairs = parse_pairs(resp.json())

        return SourceResult.from_parsed(select_best_pair(pairs, self._chain_id))


class DexscreenerBasePairSource(_DexscreenerSearch):
    """Last resort: price from a pair quoted in the network's base asset."""

    name = "dexscreener_base_pair"

    def __init__(
        self,
        fetcher: HttpFetcher,
        *,
        base_symbol: str = "SUI",
        base_addresses: Sequence[str] = (),
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("retry_config", RetryConfig.no_retry())
        super().__init__(fetcher, **kwargs)
        self._base_symbol = base_symbol
        self._base_addresses = tuple(base_addresses)

    def _attempt(self, identifier: str) -> SourceResult:
        resp = self._search(identifier)
        if not resp.ok:
            return http_unavailable(resp)
        pairs = parse_pairs(resp.json())
        return SourceResult.from_parsed(
            select_base_pair(pairs, self._base_symbol, self._base_addresses)
        )
