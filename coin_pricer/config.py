"""
Load config from config.yaml with optional env overrides.
Single source of truth for DB path, cache TTL, HTTP timeouts, retry policy,
network constants, endpoints and source priority lists.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from .core.errors import ConfigError

SUI_COIN_TYPE = "0x2::sui::SUI"
SUI_COIN_TYPE_LONG = "0x0000000000000000000000000000000000000000000000000000000000000002::sui::SUI"
USDC_COIN_TYPE = "0xdba34672e30cb065b1f93e3ab55318768fd6fef66c15942c9f7cb846e2f900e7::usdc::USDC"

# Defaults if no YAML or env
_DEFAULTS = {
    "db": {"path": "coin_prices.sqlite", "busy_timeout_ms": 5000},
    "cache": {"ttl_ms": 5 * 60 * 1000},
    "http": {
        "fetch_timeout_ms": 8000,
        "aux_timeout_ms": 5000,
        "aggregator_timeout_ms": 6000,
        "user_agent": "coin-pricer/0.1",
    },
    "retry": {"max_attempts": 2, "base_delay_s": 0.8},
    "resolution": {"budget_s": 60.0},
    "network": {
        "dexscreener_chain_id": "sui",
        "geckoterminal_network": "sui-network",
        "platform_hint": "sui",
        "base_asset": SUI_COIN_TYPE,
        "base_asset_aliases": [SUI_COIN_TYPE_LONG],
        "base_symbol": "SUI",
        "base_name": "Sui",
        "base_decimals": 9,
        "reference_asset": USDC_COIN_TYPE,
        "reference_decimals": 6,
        "default_decimals": 9,
        "rpc_url": "https://fullnode.mainnet.sui.io:443",
    },
    "endpoints": {
        "sevenk": "https://prices.7k.ag",
        "geckoterminal": "https://api.geckoterminal.com/api/v2",
        "dexscreener": "https://api.dexscreener.com",
        "coingecko": "https://api.coingecko.com/api/v3",
        "hop": "https://aggregator-api.hop.ag/api/v1",
        "aftermath": "https://aftermath.finance/api",
    },
    "coingecko": {
        "known_ids": {
            SUI_COIN_TYPE: "sui",
            USDC_COIN_TYPE: "usd-coin",
            "0x5d4b302506645c37ff133b98c4b50a5ae14841659738d6d733d59d0d217a93bf::coin::COIN": "tether",
            "0xa99b8952d4f7d947ea77fe0ecdcc9e5fc0bcab2841d6e2a5aa00c3044e5544b5::navx::NAVX": "navi-protocol",
            "0x06864a6f921804860930db6ddbe2e16acdf8504495ea7481637a1c8b9a8fe54b::cetus::CETUS": "cetus-protocol",
            "0xce7ff77a83ea0cb6fd39bd8748e2ec89a3f41e8efdc3f4eb123e0ca37b184db2::buck::BUCK": "bucket-protocol",
            "0xbde4ba4c2e274a60ce15c1cfff9e5c42e136a8bc::afsui::AFSUI": "aftermath-staked-sui",
            "0xfe3afec26c59e874f3c1d60b8203cb3852d2bb2aa415df9548b8d688e6683f93::alpha::ALPHA": "alphafi",
        },
    },
    "sources": {
        "default_priority": [
            "sevenk",
            "geckoterminal",
            "dexscreener",
            "coingecko",
            "hop",
            "aftermath",
            "sevenk_batch",
            "dexscreener_base_pair",
        ],
        "base_priority": ["coingecko", "sevenk", "geckoterminal", "dexscreener"],
    },
}


def _config_yaml_path() -> Path:
    """config.yaml lives at repo root (parent of package dir) unless COIN_PRICER_CONFIG is set."""
    explicit = os.environ.get("COIN_PRICER_CONFIG")
    if explicit:
        return Path(explicit)
    return Path(__file__).resolve().parent.parent / "config.yaml"


def _load_yaml() -> dict:
    config_path = _config_yaml_path()
    if not config_path.exists():
        return {}
    with open(config_path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else {}


def _deep_merge(base: dict, override: dict) -> dict:
    out = dict(base)
    for k, v in override.items():
        if k in out and isinstance(out[k], dict) and isinstance(v, dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _env_int(name: str) -> int | None:
    raw = os.environ.get(name)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc


def _env_overrides() -> dict:
    overrides: dict = {}
    path = os.environ.get("COIN_PRICER_DB_PATH")
    if path:
        overrides.setdefault("db", {})["path"] = path
    ttl = _env_int("COIN_PRICER_CACHE_TTL_MS")
    if ttl is not None:
        overrides.setdefault("cache", {})["ttl_ms"] = ttl
    timeout = _env_int("COIN_PRICER_FETCH_TIMEOUT_MS")
    if timeout is not None:
        overrides.setdefault("http", {})["fetch_timeout_ms"] = timeout
    return overrides


def get_config() -> dict:
    """Return merged config: defaults <- config.yaml <- env."""
    merged = _deep_merge(_DEFAULTS, _load_yaml())
    merged = _deep_merge(merged, _env_overrides())
    return merged


# Convenience accessors. Those taking cfg read an already merged dict
# (create_default_registry passes one); None means get_config().
def _cfg(cfg: Optional[dict]) -> dict:
    return cfg if cfg is not None else get_config()


def _positive_int(value: object, key: str) -> int:
    number = int(value)
    if number <= 0:
        raise ConfigError(f"{key} must be > 0, got {number}")
    return number


def db_path() -> str:
    return get_config()["db"]["path"]


def db_busy_timeout_ms() -> int:
    return int(get_config()["db"]["busy_timeout_ms"])


def cache_ttl_ms() -> int:
    ttl = int(get_config()["cache"]["ttl_ms"])
    if ttl < 0:
        raise ConfigError(f"cache.ttl_ms must be >= 0, got {ttl}")
    return ttl


def fetch_timeout_ms(cfg: Optional[dict] = None) -> int:
    return _positive_int(_cfg(cfg)["http"]["fetch_timeout_ms"], "http.fetch_timeout_ms")


def aux_timeout_ms(cfg: Optional[dict] = None) -> int:
    return _positive_int(_cfg(cfg)["http"]["aux_timeout_ms"], "http.aux_timeout_ms")


def aggregator_timeout_ms(cfg: Optional[dict] = None) -> int:
    return _positive_int(_cfg(cfg)["http"]["aggregator_timeout_ms"], "http.aggregator_timeout_ms")


def retry_max_attempts(cfg: Optional[dict] = None) -> int:
    attempts = int(_cfg(cfg)["retry"]["max_attempts"])
    if attempts < 1:
        raise ConfigError(f"retry.max_attempts must be >= 1, got {attempts}")
    return attempts


def retry_base_delay_s(cfg: Optional[dict] = None) -> float:
    delay = float(_cfg(cfg)["retry"]["base_delay_s"])
    if delay < 0:
        raise ConfigError(f"retry.base_delay_s must be >= 0, got {delay}")
    return delay


def resolution_budget_s() -> float | None:
    budget = get_config()["resolution"].get("budget_s")
    return float(budget) if budget else None


def network(cfg: Optional[dict] = None) -> Dict[str, object]:
    return dict(_cfg(cfg)["network"])


def base_asset() -> str:
    return str(get_config()["network"]["base_asset"])


def base_asset_aliases(cfg: Optional[dict] = None) -> List[str]:
    return [str(a) for a in (_cfg(cfg)["network"].get("base_asset_aliases") or [])]


def endpoints(cfg: Optional[dict] = None) -> Dict[str, str]:
    return dict(_cfg(cfg)["endpoints"])


def known_coingecko_ids(cfg: Optional[dict] = None) -> Dict[str, str]:
    """Configured ids; base asset aliases share the base asset's id unless mapped explicitly."""
    c = _cfg(cfg)
    known = dict(c["coingecko"].get("known_ids") or {})
    base_id = known.get(c["network"]["base_asset"])
    if base_id:
        for alias in base_asset_aliases(c):
            known.setdefault(alias, base_id)
    return known


def default_priority(cfg: Optional[dict] = None) -> List[str]:
    return list(_cfg(cfg)["sources"]["default_priority"])


def base_priority(cfg: Optional[dict] = None) -> List[str]:
    return list(_cfg(cfg)["sources"]["base_priority"])
