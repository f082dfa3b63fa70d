"""
GeckoTerminal on-chain indexer (CoinGecko's DEX-derived data).

Uses the public GeckoTerminal API (no authentication required):
  GET https://api.geckoterminal.com/api/v2/networks/{network}/tokens/{address}

The full coin type is the token address on Sui. Fields used:
  data.attributes.price_usd          DEX-derived USD price (string or null)
  data.attributes.coingecko_coin_id  cross-reference into CoinGecko (or null)
"""
from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import quote

from ...core.types import ParsedPrice, SourceResult
from ..base import HttpPriceSource, http_unavailable, safe_get
from ..http import HttpFetcher

logger = logging.getLogger(__name__)

GECKOTERMINAL_BASE_URL = "https://api.geckoterminal.com/api/v2"
DEFAULT_NETWORK = "sui-network"
AUX_TIMEOUT_MS = 5000


def parse_token_price(data: Any) -> ParsedPrice:
    """Map a token payload to a ParsedPrice."""
    if not isinstance(data, dict) or not isinstance(data.get("data"), dict):
        return ParsedPrice.malformed("missing data object")
    attributes = safe_get(data, "data.attributes")
    if not isinstance(attributes, dict):
        return ParsedPrice.malformed("missing data.attributes")
    raw = attributes.get("price_usd")
    if raw in (None, ""):
        return ParsedPrice.no_price("price_usd is null")
    try:
        return ParsedPrice.price(float(raw))
    except (TypeError, ValueError):
        return ParsedPrice.malformed(f"unparseable price_usd {raw!r}")


def parse_coingecko_id(data: Any) -> Optional[str]:
    cg_id = safe_get(data, "data.attributes.coingecko_coin_id")
    if isinstance(cg_id, str) and cg_id.strip():
        return cg_id.strip()
    return None


class GeckoTerminalPriceSource(HttpPriceSource):
    """DEX-derived token price from GeckoTerminal by full coin type."""

    name = "geckoterminal"

    def __init__(
        self,
        fetcher: HttpFetcher,
        *,
        base_url: str = GECKOTERMINAL_BASE_URL,
        network: str = DEFAULT_NETWORK,
        aux_timeout_ms: int = AUX_TIMEOUT_MS,
        **kwargs: Any,
    ) -> None:
        super().__init__(fetcher, **kwargs)
        self._base_url = base_url.rstrip("/")
        self._network = network
        self._aux_timeout_ms = aux_timeout_ms

    def token_url(self, identifier: str) -> str:
        return f"{self._base_url}/networks/{self._network}/tokens/{quote(identifier, safe='')}"

    def _attempt(self, identifier: str) -> SourceResult:
        resp = self._get(self.token_url(identifier))
        if not resp.ok:
            return http_unavailable(resp)
        return SourceResult.from_parsed(parse_token_price(resp.json()))

    def lookup_coingecko_id(self, identifier: str) -> Optional[str]:
        """
        Cross-referenced CoinGecko id for a coin type, or None.

        Auxiliary lookup used inside the CoinGecko source: single attempt with
        the shorter timeout. Raises TransportError / ParseError.
        """
        resp = self._get(self.token_url(identifier), timeout_ms=self._aux_timeout_ms)
        if not resp.ok:
            return None
        return parse_coingecko_id(resp.json())
