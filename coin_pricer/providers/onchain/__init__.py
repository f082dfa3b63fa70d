"""On-chain oracle and RPC clients."""
from __future__ import annotations

from .sevenk import SevenKBatchPriceSource, SevenKPriceClient, SevenKPriceSource
from .sui_rpc import DecimalsResolver, SuiCoinMetadataClient

__all__ = [
    "SevenKPriceClient",
    "SevenKPriceSource",
    "SevenKBatchPriceSource",
    "SuiCoinMetadataClient",
    "DecimalsResolver",
]
