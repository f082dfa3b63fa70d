"""
Aftermath Finance price-info API.

  POST https://aftermath.finance/api/price-info  {"coins": [coin_type]}
  -> {"<coin_type>": {"price": 1.23, "priceChange24HoursPercentage": ...}}
"""
from __future__ import annotations

from typing import Any

from ...core.types import ParsedPrice, SourceResult
from ..base import HttpPriceSource, http_unavailable
from ..http import HttpFetcher
from ..resilience import RetryConfig

AFTERMATH_BASE_URL = "https://aftermath.finance/api"
AGGREGATOR_TIMEOUT_MS = 6000


def parse_price_info(data: Any, coin_type: str) -> ParsedPrice:
    if not isinstance(data, dict):
        return ParsedPrice.malformed(f"unexpected payload type {type(data).__name__}")
    if not data:
        return ParsedPrice.no_price("empty price-info")
    info = data.get(coin_type)
    if info is None:
        info = next(iter(data.values()))
    if not isinstance(info, dict):
        return ParsedPrice.malformed(f"price-info entry is {type(info).__name__}")
    price = info.get("price")
    if price is None:
        return ParsedPrice.no_price("price missing")
    if isinstance(price, bool) or not isinstance(price, (int, float)):
        return ParsedPrice.malformed(f"price has type {type(price).__name__}")
    return ParsedPrice.price(float(price))


class AftermathPriceSource(HttpPriceSource):
    """Single-coin lookup against Aftermath's batch price endpoint."""

    name = "aftermath"

    def __init__(self, fetcher: HttpFetcher, *, base_url: str = AFTERMATH_BASE_URL, **kwargs: Any) -> None:
        kwargs.setdefault("retry_config", RetryConfig.no_retry())
        kwargs.setdefault("timeout_ms", AGGREGATOR_TIMEOUT_MS)
        super().__init__(fetcher, **kwargs)
        self._base_url = base_url.rstrip("/")

    def _attempt(self, identifier: str) -> SourceResult:
        resp = self._post(f"{self._base_url}/price-info", {"coins": [identifier]})
        if not resp.ok:
            return http_unavailable(resp)
        return SourceResult.from_parsed(parse_price_info(resp.json(), identifier))
