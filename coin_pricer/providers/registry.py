"""
Source registry: central catalog of available price sources.

Sources register here by name. Resolution policies are plain data (ordered
name lists), so which sources are tried, and in what order, is decided by
config.yaml rather than by code.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from ..core.errors import ConfigError
from .base import PriceSource

logger = logging.getLogger(__name__)

SourceFactory = Union[PriceSource, Callable[[], PriceSource]]


@dataclass(frozen=True)
class PricePolicy:
    """
    Ordered source names per identifier.

    default applies to every identifier; overrides maps specific identifiers
    (the base asset and its aliases) to their own order.
    """

    default: Tuple[str, ...]
    overrides: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        default: Sequence[str],
        overrides: Optional[Mapping[str, Sequence[str]]] = None,
    ) -> PricePolicy:
        return cls(
            default=tuple(default),
            overrides={k: tuple(v) for k, v in (overrides or {}).items()},
        )

    def order_for(self, identifier: str) -> Tuple[str, ...]:
        return self.overrides.get(identifier, self.default)

    def all_names(self) -> List[str]:
        seen: Dict[str, None] = dict.fromkeys(self.default)
        for names in self.overrides.values():
            seen.update(dict.fromkeys(names))
        return list(seen)


class SourceRegistry:
    """
    Registry mapping source names to instances or zero-argument factories.

    Usage:
        registry = SourceRegistry()
        registry.register(SevenKPriceSource(client))
        registry.register("geckoterminal", lambda: GeckoTerminalPriceSource(fetcher))

        chain = registry.build_chain(["sevenk", "geckoterminal"])
    """

    def __init__(self) -> None:
        self._factories: Dict[str, SourceFactory] = {}
        self._instances: Dict[str, PriceSource] = {}

    def register(self, name_or_source: Union[str, PriceSource], factory: Optional[SourceFactory] = None) -> None:
        """Register a source by name, or an instance under its own source_name."""
        if isinstance(name_or_source, str):
            if factory is None:
                raise ValueError(f"No factory given for source '{name_or_source}'")
            name = name_or_source
        else:
            factory = name_or_source
            name = name_or_source.source_name
        self._factories[name] = factory
        self._instances.pop(name, None)
        logger.debug("Registered price source: %s", name)

    def get(self, name: str) -> PriceSource:
        """Get or instantiate a source by name."""
        if name not in self._instances:
            factory = self._factories.get(name)
            if factory is None:
                raise KeyError(
                    f"Unknown price source '{name}'. "
                    f"Available: {list(self._factories)}"
                )
            if isinstance(factory, type) or not isinstance(factory, PriceSource):
                self._instances[name] = factory()
            else:
                self._instances[name] = factory
        return self._instances[name]

    def __contains__(self, name: object) -> bool:
        return name in self._factories

    @property
    def names(self) -> List[str]:
        return list(self._factories)

    def build_chain(self, priority: Optional[Sequence[str]] = None) -> List[PriceSource]:
        """Ordered list of sources from a priority list; unknown names are skipped."""
        names = list(priority) if priority is not None else list(self._factories)
        missing = [n for n in names if n not in self._factories]
        if missing:
            logger.warning("Skipping unregistered price sources: %s", ", ".join(missing))
        return [self.get(n) for n in names if n in self._factories]

    def validate_policy(self, policy: PricePolicy) -> None:
        """Raise ConfigError if the policy names a source that is not registered."""
        missing = [n for n in policy.all_names() if n not in self._factories]
        if missing:
            raise ConfigError(
                f"Price policy names unknown sources {missing}. Available: {self.names}"
            )
