"""
7k Protocol price oracle: single and batch lookups.

Uses the public 7k price API behind the 7k SDK (no authentication required):
  GET https://prices.7k.ag/price?ids={id[,id...]}&vsCoin={coin_type}

Response shape:
  {"<coin_type>": {"price": 1.2345, "lastUpdated": 1726700400000}, ...}
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from ...core.errors import ParseError, TransportError
from ...core.types import ParsedPrice, SourceResult
from ..base import GuardedPriceSource
from ..http import DEFAULT_TIMEOUT_MS, HttpFetcher
from ..resilience import RetryConfig

logger = logging.getLogger(__name__)

SEVENK_BASE_URL = "https://prices.7k.ag"
BATCH_CHUNK_SIZE = 100


def parse_price_map(data: Any) -> Dict[str, Any]:
    """Map coin_type -> raw price candidate. Raises ParseError on a non-object payload."""
    if not isinstance(data, dict):
        raise ParseError(f"Unexpected 7k response type: {type(data).__name__}")
    out: Dict[str, Any] = {}
    for coin_type, entry in data.items():
        if isinstance(entry, dict):
            out[coin_type] = entry.get("price")
        else:
            out[coin_type] = entry
    return out


def pick_price(price_map: Dict[str, Any], coin_type: str) -> ParsedPrice:
    """Price for coin_type, falling back to the first entry when the key is echoed differently."""
    if coin_type in price_map:
        candidate = price_map[coin_type]
    elif price_map:
        candidate = next(iter(price_map.values()))
    else:
        return ParsedPrice.no_price("empty price map")
    if candidate is None:
        return ParsedPrice.no_price("price missing")
    if isinstance(candidate, bool) or not isinstance(candidate, (int, float, str)):
        return ParsedPrice.malformed(f"price has type {type(candidate).__name__}")
    try:
        return ParsedPrice.price(float(candidate))
    except ValueError:
        return ParsedPrice.malformed(f"unparseable price {candidate!r}")


class SevenKPriceClient:
    """Client for the 7k price oracle. Raises TransportError / ParseError on failure."""

    def __init__(
        self,
        fetcher: HttpFetcher,
        base_url: str = SEVENK_BASE_URL,
        vs_coin: Optional[str] = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
    ) -> None:
        self._fetcher = fetcher
        self._base_url = base_url.rstrip("/")
        self._vs_coin = vs_coin
        self._timeout_ms = timeout_ms

    def _params(self, ids: Sequence[str]) -> Dict[str, str]:
        params = {"ids": ",".join(ids)}
        if self._vs_coin:
            params["vsCoin"] = self._vs_coin
        return params

    def _request(self, ids: Sequence[str]) -> Dict[str, Any]:
        resp = self._fetcher.get(
            f"{self._base_url}/price",
            self._timeout_ms,
            params=self._params(ids),
        )
        resp.raise_for_retryable()
        if not resp.ok:
            raise TransportError(f"7k price API returned HTTP {resp.status_code}")
        return parse_price_map(resp.json())

    def get_price(self, coin_type: str) -> ParsedPrice:
        """Single lookup."""
        return pick_price(self._request([coin_type]), coin_type)

    def get_prices(self, coin_types: List[str]) -> Dict[str, Any]:
        """Batch lookup; chunks long id lists. Returns coin_type -> raw candidate."""
        out: Dict[str, Any] = {}
        for i in range(0, len(coin_types), BATCH_CHUNK_SIZE):
            out.update(self._request(coin_types[i:i + BATCH_CHUNK_SIZE]))
        return out


class SevenKPriceSource(GuardedPriceSource):
    """Primary on-chain oracle: direct single-coin lookup."""

    name = "sevenk"

    def __init__(self, client: SevenKPriceClient, **kwargs: Any) -> None:
        kwargs.setdefault("retry_config", RetryConfig.no_retry())
        super().__init__(**kwargs)
        self._client = client

    def _attempt(self, identifier: str) -> SourceResult:
        return SourceResult.from_parsed(self._client.get_price(identifier))


class SevenKBatchPriceSource(GuardedPriceSource):
    """Batch endpoint asked for a one-element list; sometimes answers when the single lookup did not."""

    name = "sevenk_batch"

    def __init__(self, client: SevenKPriceClient, **kwargs: Any) -> None:
        kwargs.setdefault("retry_config", RetryConfig.no_retry())
        super().__init__(**kwargs)
        self._client = client

    def _attempt(self, identifier: str) -> SourceResult:
        price_map = self._client.get_prices([identifier])
        return SourceResult.from_parsed(pick_price(price_map, identifier))
