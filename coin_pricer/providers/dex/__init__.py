"""DEX pair-search price sources."""
from __future__ import annotations

from .dexscreener import DexscreenerBasePairSource, DexscreenerSearchSource

__all__ = ["DexscreenerSearchSource", "DexscreenerBasePairSource"]
