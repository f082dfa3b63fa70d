"""Swap-aggregator and DeFi protocol price sources."""
from __future__ import annotations

from .aftermath import AftermathPriceSource
from .hop import HopQuotePriceSource

__all__ = ["AftermathPriceSource", "HopQuotePriceSource"]
