"""
Top-level CLI dispatcher: coin-pricer <command> [args...].
All commands run against the engine from coin_pricer.jobs.
"""

from __future__ import annotations

import argparse
import logging
import sqlite3
import sys
from pathlib import Path
from typing import List, Optional

from coin_pricer import config
from coin_pricer.core.errors import CoinPricerError
from coin_pricer.timeutils import ms_to_iso


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _main_price(args: argparse.Namespace) -> int:
    from coin_pricer.jobs import open_engine

    with open_engine(args.db) as ctx:
        if args.refresh:
            price = ctx.resolver.refresh(args.identifier)
        else:
            price = ctx.resolver.get_token_price(args.identifier)
    if price is None:
        print(f"No price found for {args.identifier}", file=sys.stderr)
        return 1
    print(f"{args.identifier}\t{price}")
    return 0


def _main_update_base(args: argparse.Namespace) -> int:
    from coin_pricer.jobs import open_engine, update_base_asset_price

    with open_engine(args.db) as ctx:
        price = update_base_asset_price(ctx)
    if price is None:
        print("Base asset price update failed", file=sys.stderr)
        return 1
    print(f"{config.base_asset()}\t{price}")
    return 0


def _main_refresh_unpriced(args: argparse.Namespace) -> int:
    from coin_pricer.jobs import open_engine, refresh_unpriced_tokens

    with open_engine(args.db) as ctx:
        summary = refresh_unpriced_tokens(ctx)
    print(f"total={summary.total} updated={summary.updated} failed={summary.failed}")
    return 0 if summary.failed == 0 else 1


def _main_history(args: argparse.Namespace) -> int:
    from coin_pricer.jobs import base_asset_history, open_engine

    with open_engine(args.db) as ctx:
        rows = base_asset_history(ctx, args.minutes)
    if not rows:
        print(f"No base asset history in the last {args.minutes} minutes")
        return 0
    for ts_ms, price in rows:
        print(f"{ms_to_iso(ts_ms)}\t{price}")
    return 0


def _main_health(args: argparse.Namespace) -> int:
    from coin_pricer.jobs import open_engine

    with open_engine(args.db) as ctx:
        records = ctx.health_store.load_all()
    if not records:
        print("No source health recorded yet")
        return 0
    for h in records:
        print(
            f"{h.source_name:<22} {h.status.value:<9} fails={h.fail_count:<3} "
            f"last_ok={h.last_ok_at or '-'} last_error={h.last_error or '-'}"
        )
    return 0


def _main_init_db(args: argparse.Namespace) -> int:
    from coin_pricer.db.migrations import run_migrations

    db_path = Path(args.db or config.db_path()).resolve()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    path_str = str(db_path)
    conn = sqlite3.connect(path_str)
    try:
        run_migrations(conn)
    finally:
        conn.close()
    print(f"Initialized DB: {path_str}")
    return 0


_COMMANDS = {
    "price": _main_price,
    "update-base": _main_update_base,
    "refresh-unpriced": _main_refresh_unpriced,
    "history": _main_history,
    "health": _main_health,
    "init-db": _main_init_db,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="coin-pricer",
        description="Resolve USD prices for Sui coin types with cached source fallback",
    )
    parser.add_argument("--db", default=None, help="SQLite DB path (default: config db.path)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", help="command")

    p = subparsers.add_parser("price", help="Resolve the USD price of one coin type")
    p.add_argument("identifier", help="Coin type, e.g. 0x2::sui::SUI")
    p.add_argument("--refresh", action="store_true", help="Skip the cache and query sources")

    subparsers.add_parser("update-base", help="Refresh the base asset price and append history")
    subparsers.add_parser("refresh-unpriced", help="Resolve every stored token whose price is 0")

    p = subparsers.add_parser("history", help="Base asset price history")
    p.add_argument("--minutes", type=int, default=60, help="Look-back window (default: 60)")

    subparsers.add_parser("health", help="Show per-source health")
    subparsers.add_parser("init-db", help="Create the SQLite DB and run migrations")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 0

    _setup_logging(args.verbose)
    try:
        return _COMMANDS[args.command](args)
    except (CoinPricerError, sqlite3.Error) as e:
        print(f"{args.command} failed: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
