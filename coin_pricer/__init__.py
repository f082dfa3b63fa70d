"""
Top-level public API surface. Stable facades only.
Canonical entrypoint: import coin_pricer; use coin_pricer.get_token_price or
coin_pricer.jobs.open_engine for explicit lifecycle control.
Does not import cli.
"""

from __future__ import annotations

import threading
from typing import Optional

from . import core
from ._version import __version__

_engine = None
_engine_lock = threading.Lock()


def get_token_price(identifier: str) -> Optional[float]:
    """
    USD price for a coin type using the configured database and sources.

    Opens a process-wide engine on first use. Returns None when no source
    produced a valid price.
    """
    global _engine
    with _engine_lock:
        if _engine is None:
            from .jobs import open_engine

            _engine = open_engine()
        engine = _engine
    return engine.resolver.get_token_price(identifier)


# Do not add exports without updating __all__.
__all__ = [
    "__version__",
    "core",
    "get_token_price",
]
