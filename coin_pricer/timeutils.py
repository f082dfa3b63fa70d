"""
Single source for "now" time. Supports deterministic mode for tests via
COIN_PRICER_DETERMINISTIC_TIME_MS (epoch milliseconds).
"""

from __future__ import annotations

import os
import time
from datetime import datetime, timezone


def now_ms() -> int:
    """
    Return current wall-clock time in epoch milliseconds.
    If env COIN_PRICER_DETERMINISTIC_TIME_MS is set, return that value instead.
    """
    fixed = os.environ.get("COIN_PRICER_DETERMINISTIC_TIME_MS", "").strip()
    if fixed:
        return int(fixed)
    return int(time.time() * 1000)


def now_utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def ms_to_iso(ts_ms: int) -> str:
    return datetime.fromtimestamp(ts_ms / 1000.0, tz=timezone.utc).isoformat(timespec="seconds")
