"""
Default source registry configuration.

Registers the built-in price sources and builds the resolution policy from
config.yaml settings. To add a new source, register it here and add its name
to sources.default_priority (or sources.base_priority).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from .. import config
from .aggregators.aftermath import AftermathPriceSource
from .aggregators.hop import HopQuotePriceSource
from .base import PriceSource
from .dex.dexscreener import DexscreenerBasePairSource, DexscreenerSearchSource
from .http import HttpFetcher
from .indexer.geckoterminal import GeckoTerminalPriceSource
from .market.coingecko import CoinGeckoPriceSource
from .market.id_map import CoinGeckoIdMap, IdMappingPersistence
from .onchain.sevenk import SevenKBatchPriceSource, SevenKPriceClient, SevenKPriceSource
from .onchain.sui_rpc import DecimalsResolver, SuiCoinMetadataClient
from .registry import PricePolicy, SourceRegistry
from .resilience import RetryConfig

logger = logging.getLogger(__name__)


@dataclass
class SourceSetup:
    """Registry plus the shared pieces callers may want to reach."""

    registry: SourceRegistry
    policy: PricePolicy
    fetcher: HttpFetcher
    id_map: CoinGeckoIdMap


def load_policy(cfg: Optional[dict] = None) -> PricePolicy:
    """
    Resolution policy from config.

    Expected YAML structure:
        sources:
          default_priority: ["sevenk", "geckoterminal", ...]
          base_priority: ["coingecko", "sevenk", ...]
        network:
          base_asset: "0x2::sui::SUI"
          base_asset_aliases: ["0x000...0002::sui::SUI"]
    """
    cfg = cfg or config.get_config()
    base_order = config.base_priority(cfg)
    base_ids = [config.network(cfg)["base_asset"], *config.base_asset_aliases(cfg)]
    return PricePolicy.build(
        default=config.default_priority(cfg),
        overrides={ident: base_order for ident in base_ids},
    )


def create_default_registry(
    fetcher: Optional[HttpFetcher] = None,
    *,
    id_persistence: Optional[IdMappingPersistence] = None,
    cfg: Optional[dict] = None,
) -> SourceSetup:
    """Create a registry with all built-in sources wired from config."""
    cfg = cfg or config.get_config()
    net = config.network(cfg)
    urls: Dict[str, str] = config.endpoints(cfg)
    fetch_timeout = config.fetch_timeout_ms(cfg)
    aggregator_timeout = config.aggregator_timeout_ms(cfg)

    fetcher = fetcher or HttpFetcher(
        default_timeout_ms=fetch_timeout,
        user_agent=cfg["http"].get("user_agent"),
    )
    retry = RetryConfig(
        max_attempts=config.retry_max_attempts(cfg),
        base_delay_s=config.retry_base_delay_s(cfg),
    )

    sevenk_client = SevenKPriceClient(fetcher, base_url=urls["sevenk"], timeout_ms=fetch_timeout)
    geckoterminal = GeckoTerminalPriceSource(
        fetcher,
        base_url=urls["geckoterminal"],
        network=net["geckoterminal_network"],
        aux_timeout_ms=config.aux_timeout_ms(cfg),
        retry_config=retry,
        timeout_ms=fetch_timeout,
    )
    id_map = CoinGeckoIdMap(known=config.known_coingecko_ids(cfg), persistence=id_persistence)
    base_addresses: List[str] = [net["base_asset"], *config.base_asset_aliases(cfg)]
    known_decimals = {addr: int(net["base_decimals"]) for addr in base_addresses}
    known_decimals[net["reference_asset"]] = int(net["reference_decimals"])
    decimals = DecimalsResolver(
        known=known_decimals,
        client=SuiCoinMetadataClient(fetcher, rpc_url=net["rpc_url"]),
        default=int(net["default_decimals"]),
    )

    registry = SourceRegistry()
    registry.register(SevenKPriceSource(sevenk_client))
    registry.register(geckoterminal)
    registry.register(
        DexscreenerSearchSource(
            fetcher,
            base_url=urls["dexscreener"],
            chain_id=net["dexscreener_chain_id"],
            retry_config=retry,
            timeout_ms=fetch_timeout,
        )
    )
    registry.register(
        CoinGeckoPriceSource(
            fetcher,
            id_map,
            id_lookup=geckoterminal,
            base_url=urls["coingecko"],
            platform_hint=net["platform_hint"],
            retry_config=retry,
            timeout_ms=fetch_timeout,
        )
    )
    registry.register(
        HopQuotePriceSource(
            fetcher,
            decimals_lookup=decimals,
            reference_asset=net["reference_asset"],
            reference_decimals=int(net["reference_decimals"]),
            base_url=urls["hop"],
            timeout_ms=aggregator_timeout,
        )
    )
    registry.register(AftermathPriceSource(fetcher, base_url=urls["aftermath"], timeout_ms=aggregator_timeout))
    registry.register(SevenKBatchPriceSource(sevenk_client))
    registry.register(
        DexscreenerBasePairSource(
            fetcher,
            base_url=urls["dexscreener"],
            chain_id=net["dexscreener_chain_id"],
            base_symbol=net["base_symbol"],
            base_addresses=base_addresses,
            timeout_ms=fetch_timeout,
        )
    )

    policy = load_policy(cfg)
    registry.validate_policy(policy)
    logger.debug("Registered price sources: %s", ", ".join(registry.names))
    return SourceSetup(registry=registry, policy=policy, fetcher=fetcher, id_map=id_map)


def build_chains(setup: SourceSetup) -> Dict[str, List[PriceSource]]:
    """Policy names -> source objects: {"default": [...], <identifier>: [...]}."""
    chains: Dict[str, List[PriceSource]] = {"default": setup.registry.build_chain(setup.policy.default)}
    for ident, names in setup.policy.overrides.items():
        chains[ident] = setup.registry.build_chain(names)
    return chains
