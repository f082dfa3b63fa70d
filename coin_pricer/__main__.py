"""Allow python -m coin_pricer to print help."""
from __future__ import annotations

from . import __version__

_HELP = f"""\
coin-pricer {__version__}

USD price resolution for Sui coin types: cache first, then an ordered
fallback chain of price sources.

Commands:
  coin-pricer price <coin_type> [--refresh]   Resolve one price
  coin-pricer update-base                     Refresh the base asset price + history
  coin-pricer refresh-unpriced                Resolve every stored 0-price token
  coin-pricer history [--minutes N]           Base asset price history
  coin-pricer health                          Per-source health
  coin-pricer init-db                         Create the SQLite DB and run migrations

Global options: --db PATH, -v (debug logging)
"""


def main() -> int:
    print(_HELP)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
