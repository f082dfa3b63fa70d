"""
Shared exception types for coin_pricer.
Stable surface; extend only.
"""

from __future__ import annotations


class CoinPricerError(Exception):
    """Base exception for coin_pricer; catch this for any package-raised error."""

    pass


class TransportError(CoinPricerError):
    """Network-level failure talking to an external price source."""

    pass


class FetchTimeoutError(TransportError):
    """An outbound call exceeded its hard deadline and was cancelled."""

    pass


class HttpStatusError(TransportError):
    """Retryable HTTP status (429 / 5xx) returned by an external source."""

    def __init__(self, status_code: int, url: str) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(f"HTTP {status_code} from {url}")


class ParseError(CoinPricerError):
    """Malformed or unexpected response shape."""

    pass


class ValidationError(CoinPricerError):
    """Numeric value outside the accepted price domain."""

    pass


class CacheError(CoinPricerError):
    """Price store unavailable or failed."""

    pass


class ConfigError(CoinPricerError):
    """Invalid configuration value."""

    pass


__all__ = [
    "CoinPricerError",
    "TransportError",
    "FetchTimeoutError",
    "HttpStatusError",
    "ParseError",
    "ValidationError",
    "CacheError",
    "ConfigError",
]
