"""Source registry, price policy and the default wiring from config."""
from __future__ import annotations

import pytest

from coin_pricer import config
from coin_pricer.core.errors import ConfigError
from coin_pricer.providers.defaults import build_chains, create_default_registry, load_policy
from coin_pricer.providers.registry import PricePolicy, SourceRegistry
from tests.fakes import FakeFetcher, FakeSource, json_response


class TestSourceRegistry:
    def test_register_instances_and_factories(self):
        registry = SourceRegistry()
        registry.register(FakeSource("a", 1.0))
        calls = []

        def make_b():
            calls.append(1)
            return FakeSource("b", 2.0)

        registry.register("b", make_b)
        assert registry.names == ["a", "b"]
        chain = registry.build_chain(["b", "a"])
        assert [s.source_name for s in chain] == ["b", "a"]
        registry.get("b")
        assert calls == [1]

    def test_unknown_names_skipped_in_chain(self):
        registry = SourceRegistry()
        registry.register(FakeSource("a", 1.0))
        assert [s.source_name for s in registry.build_chain(["zzz", "a"])] == ["a"]

    def test_get_unknown_raises(self):
        with pytest.raises(KeyError, match="Unknown price source"):
            SourceRegistry().get("nope")

    def test_validate_policy(self):
        registry = SourceRegistry()
        registry.register(FakeSource("a", 1.0))
        registry.validate_policy(PricePolicy.build(["a"]))
        with pytest.raises(ConfigError):
            registry.validate_policy(PricePolicy.build(["a"], {"X": ["missing"]}))


class TestPricePolicy:
    def test_override_and_default(self):
        policy = PricePolicy.build(["a", "b"], {"BASE": ["b"]})
        assert policy.order_for("BASE") == ("b",)
        assert policy.order_for("OTHER") == ("a", "b")
        assert policy.all_names() == ["a", "b"]


class TestDefaults:
    @pytest.fixture(autouse=True)
    def _no_yaml(self, monkeypatch, tmp_path):
        monkeypatch.setenv("COIN_PRICER_CONFIG", str(tmp_path / "missing.yaml"))

    def test_all_builtin_sources_registered_in_order(self):
        setup = create_default_registry(FakeFetcher())
        chains = build_chains(setup)
        assert [s.source_name for s in chains["default"]] == config.default_priority()
        assert [s.source_name for s in chains[config.SUI_COIN_TYPE]] == config.base_priority()
        assert [s.source_name for s in chains[config.SUI_COIN_TYPE_LONG]] == config.base_priority()

    def test_policy_covers_base_asset_aliases(self):
        policy = load_policy()
        assert set(policy.overrides) == {config.SUI_COIN_TYPE, config.SUI_COIN_TYPE_LONG}

    def test_id_map_seeded_with_known_ids(self):
        setup = create_default_registry(FakeFetcher())
        assert setup.id_map.get(config.SUI_COIN_TYPE) == "sui"

    def test_base_asset_alias_priced_by_known_id(self):
        fetcher = FakeFetcher().add("GET", "/simple/price", json_response({"sui": {"usd": 1.23}}))
        setup = create_default_registry(fetcher)
        assert setup.id_map.get(config.SUI_COIN_TYPE_LONG) == "sui"

        result = setup.registry.get("coingecko").resolve(config.SUI_COIN_TYPE_LONG)
        assert result.is_valid()
        assert result.price == 1.23
        assert [c["params"]["ids"] for c in fetcher.calls_to("/simple/price")] == ["sui"]
        assert fetcher.calls_to("/search") == []
        assert fetcher.calls_to("geckoterminal") == []

    def test_bad_retry_config_rejected_at_setup(self):
        cfg = config.get_config()
        cfg["retry"] = {"max_attempts": 0, "base_delay_s": 0.8}
        with pytest.raises(ConfigError):
            create_default_registry(FakeFetcher(), cfg=cfg)

    def test_bad_timeout_rejected_at_setup(self):
        cfg = config.get_config()
        cfg["http"] = dict(cfg["http"], aggregator_timeout_ms=0)
        with pytest.raises(ConfigError):
            create_default_registry(FakeFetcher(), cfg=cfg)
