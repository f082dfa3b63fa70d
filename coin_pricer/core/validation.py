"""Price candidate validation: finite, positive, non-NaN numbers only."""

from __future__ import annotations

import math
from decimal import Decimal
from typing import Any, Optional


def is_valid_price(candidate: Any) -> bool:
    """
    True iff candidate is a real number (bool excluded), not NaN, finite and > 0.

    Zero is the store's "unknown" sentinel, so it is never a valid price.
    """
    if isinstance(candidate, bool):
        return False
    if isinstance(candidate, Decimal):
        return candidate.is_finite() and candidate > 0
    if not isinstance(candidate, (int, float)):
        return False
    if isinstance(candidate, float) and (math.isnan(candidate) or math.isinf(candidate)):
        return False
    return candidate > 0


def to_float(x: Any) -> Optional[float]:
    """Best-effort numeric coercion for JSON fields (numbers or numeric strings)."""
    if x is None or isinstance(x, bool):
        return None
    try:
        return float(x)
    except (TypeError, ValueError, ArithmeticError):
        return None
