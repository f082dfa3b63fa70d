"""On-chain indexer price sources."""
from __future__ import annotations

from .geckoterminal import GeckoTerminalPriceSource

__all__ = ["GeckoTerminalPriceSource"]
