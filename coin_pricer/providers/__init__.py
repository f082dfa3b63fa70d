"""
Price source architecture.

One adapter per external USD price source, all behind the PriceSource
protocol. Sources are registered by name and ordered by config-driven
priority lists; each adapter applies its own retry policy and deadline.
"""

from __future__ import annotations

from .base import GuardedPriceSource, HealthStatus, HttpPriceSource, PriceSource, SourceHealth
from .http import FetchResponse, HttpFetcher
from .registry import PricePolicy, SourceRegistry
from .resilience import RetryConfig, retry_call, with_retry

__all__ = [
    "PriceSource",
    "GuardedPriceSource",
    "HttpPriceSource",
    "SourceHealth",
    "HealthStatus",
    "FetchResponse",
    "HttpFetcher",
    "PricePolicy",
    "SourceRegistry",
    "RetryConfig",
    "retry_call",
    "with_retry",
]
