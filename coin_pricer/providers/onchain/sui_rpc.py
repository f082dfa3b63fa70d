"""
Sui full-node JSON-RPC: coin decimals for quote-based pricing.

  POST {rpc_url}  {"jsonrpc": "2.0", "id": 1,
                   "method": "suix_getCoinMetadata", "params": [coin_type]}
  -> {"result": {"decimals": 9, "name": ..., "symbol": ...}}
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Mapping, Optional

from ...core.errors import CoinPricerError, ParseError, TransportError
from ..base import safe_get
from ..http import HttpFetcher

logger = logging.getLogger(__name__)

SUI_MAINNET_RPC_URL = "https://fullnode.mainnet.sui.io:443"
RPC_TIMEOUT_MS = 5000


class SuiCoinMetadataClient:
    """Minimal JSON-RPC client for suix_getCoinMetadata."""

    def __init__(
        self,
        fetcher: HttpFetcher,
        rpc_url: str = SUI_MAINNET_RPC_URL,
        timeout_ms: int = RPC_TIMEOUT_MS,
    ) -> None:
        self._fetcher = fetcher
        self._rpc_url = rpc_url
        self._timeout_ms = timeout_ms

    def get_coin_metadata(self, coin_type: str) -> Optional[Dict[str, Any]]:
        body = {"jsonrpc": "2.0", "id": 1, "method": "suix_getCoinMetadata", "params": [coin_type]}
        resp = self._fetcher.post(self._rpc_url, self._timeout_ms, json_body=body)
        resp.raise_for_retryable()
        if not resp.ok:
            raise TransportError(f"Sui RPC returned HTTP {resp.status_code}")
        data = resp.json()
        if isinstance(data, dict) and data.get("error"):
            raise ParseError(f"Sui RPC error: {data['error']}")
        result = safe_get(data, "result")
        return result if isinstance(result, dict) else None

    def get_decimals(self, coin_type: str) -> Optional[int]:
        meta = self.get_coin_metadata(coin_type)
        if not meta or meta.get("decimals") is None:
            return None
        try:
            return int(meta["decimals"])
        except (TypeError, ValueError) as exc:
            raise ParseError(f"Bad decimals for {coin_type}: {meta['decimals']!r}") from exc


class DecimalsResolver:
    """
    Decimal precision per coin type: configured values, then RPC metadata,
    then the network default. Decimals never change for a coin type, so RPC
    answers are memoised.
    """

    def __init__(
        self,
        known: Optional[Mapping[str, int]] = None,
        client: Optional[SuiCoinMetadataClient] = None,
        default: int = 9,
    ) -> None:
        self._known: Dict[str, int] = dict(known or {})
        self._client = client
        self._default = default
        self._lock = threading.Lock()

    def __call__(self, coin_type: str) -> int:
        with self._lock:
            if coin_type in self._known:
                return self._known[coin_type]
        if self._client is None:
            return self._default
        try:
            decimals = self._client.get_decimals(coin_type)
        except CoinPricerError as exc:
            logger.debug("Decimals lookup failed for %s, using %d: %s", coin_type, self._default, exc)
            return self._default
        if decimals is None:
            return self._default
        with self._lock:
            self._known[coin_type] = decimals
        return decimals
