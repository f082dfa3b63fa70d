"""
Stable facade: shared errors, data contracts and validation.
Do not add exports without updating __all__.
"""

from __future__ import annotations

from .errors import (
    CacheError,
    CoinPricerError,
    ConfigError,
    FetchTimeoutError,
    HttpStatusError,
    ParseError,
    TransportError,
    ValidationError,
)
from .types import ParsedPrice, ParseOutcome, PriceQuery, PriceRecord, SourceResult, SourceStatus
from .validation import is_valid_price, to_float

# Do not add exports without updating __all__.
__all__ = [
    "CacheError",
    "CoinPricerError",
    "ConfigError",
    "FetchTimeoutError",
    "HttpStatusError",
    "ParseError",
    "TransportError",
    "ValidationError",
    "ParsedPrice",
    "ParseOutcome",
    "PriceQuery",
    "PriceRecord",
    "SourceResult",
    "SourceStatus",
    "is_valid_price",
    "to_float",
]
