"""Market-data aggregator sources (CoinGecko) and their id mapping."""
from __future__ import annotations

from .coingecko import CoinGeckoPriceSource
from .id_map import CoinGeckoIdMap

__all__ = ["CoinGeckoPriceSource", "CoinGeckoIdMap"]
