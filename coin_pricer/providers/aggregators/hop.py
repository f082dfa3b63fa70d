"""
Hop swap-aggregator quote pricing.

Quotes one whole unit of the coin into the reference stable asset:
  GET https://aggregator-api.hop.ag/api/v1/quote
      ?token_in={coin_type}&token_out={usdc}&amount_in={10**decimals_in}
  -> {"amount_out_with_fee": "1234567", "amount_out": "1235000", ...}

amount_out is in the stable asset's minimal units, so
price = amount_out / 10**decimals_out.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from ...config import USDC_COIN_TYPE
from ...core.types import ParsedPrice, SourceResult
from ...core.validation import to_float
from ..base import HttpPriceSource, http_unavailable
from ..http import HttpFetcher
from ..resilience import RetryConfig

logger = logging.getLogger(__name__)

HOP_BASE_URL = "https://aggregator-api.hop.ag/api/v1"
AGGREGATOR_TIMEOUT_MS = 6000


def parse_quote(data: Any, decimals_out: int) -> ParsedPrice:
    """Quote payload -> USD price of one unit of token_in."""
    if not isinstance(data, dict):
        return ParsedPrice.malformed(f"unexpected payload type {type(data).__name__}")
    raw = data.get("amount_out_with_fee") or data.get("amount_out")
    if raw in (None, "", 0, "0"):
        return ParsedPrice.no_price("quote has no amount_out")
    amount_out = to_float(raw)
    if amount_out is None:
        return ParsedPrice.malformed(f"unparseable amount_out {raw!r}")
    return ParsedPrice.price(amount_out / (10 ** decimals_out))


class HopQuotePriceSource(HttpPriceSource):
    """Price derived from a 1-unit swap quote into the reference stable asset."""

    name = "hop"

    def __init__(
        self,
        fetcher: HttpFetcher,
        *,
        decimals_lookup: Callable[[str], int],
        reference_asset: str = USDC_COIN_TYPE,
        reference_decimals: Optional[int] = 6,
        base_url: str = HOP_BASE_URL,
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("retry_config", RetryConfig.no_retry())
        kwargs.setdefault("timeout_ms", AGGREGATOR_TIMEOUT_MS)
        super().__init__(fetcher, **kwargs)
        self._decimals_lookup = decimals_lookup
        self._reference_asset = reference_asset
        self._reference_decimals = reference_decimals
        self._base_url = base_url.rstrip("/")

    def _attempt(self, identifier: str) -> SourceResult:
        decimals_in = self._decimals_lookup(identifier)
        decimals_out = (
            self._reference_decimals
            if self._reference_decimals is not None
            else self._decimals_lookup(self._reference_asset)
        )
        resp = self._get(
            f"{self._base_url}/quote",
            params={
                "token_in": identifier,
                "token_out": self._reference_asset,
                "amount_in": str(10 ** decimals_in),
            },
        )
        if not resp.ok:
            return http_unavailable(resp)
        return SourceResult.from_parsed(parse_quote(resp.json(), decimals_out))
