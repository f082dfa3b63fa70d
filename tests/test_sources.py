"""
Price source adapters against canned HTTP responses (no live network).

Each adapter is checked for its happy path, its fallbacks inside the
response, and how transport / parse failures map to SourceResult.
"""
from __future__ import annotations

from coin_pricer.core.errors import FetchTimeoutError
from coin_pricer.core.types import SourceStatus
from coin_pricer.providers.aggregators.aftermath import AftermathPriceSource
from coin_pricer.providers.aggregators.hop import HopQuotePriceSource, parse_quote
from coin_pricer.providers.dex.dexscreener import (
    DexscreenerBasePairSource,
    DexscreenerSearchSource,
    select_best_pair,
)
from coin_pricer.providers.indexer.geckoterminal import GeckoTerminalPriceSource
from coin_pricer.providers.onchain.sevenk import SevenKBatchPriceSource, SevenKPriceClient, SevenKPriceSource
from tests.fakes import FakeFetcher, json_response, raw_response

TOK = "0xabc::mod::TOK"
USDC = "0xdba34672e30cb065b1f93e3ab55318768fd6fef66c15942c9f7cb846e2f900e7::usdc::USDC"


def _no_sleep(_seconds):
    pass


# ---------------------------------------------------------------------------
# 7k oracle
# ---------------------------------------------------------------------------


class TestSevenK:
    def test_single_lookup(self):
        fetcher = FakeFetcher().add("GET", "prices.7k.ag/price", json_response({TOK: {"price": 1.5}}))
        result = SevenKPriceSource(SevenKPriceClient(fetcher)).resolve(TOK)
        assert result.is_valid()
        assert result.price == 1.5
        assert fetcher.calls[0]["params"]["ids"] == TOK

    def test_key_echoed_differently_uses_first_value(self):
        fetcher = FakeFetcher().add("GET", "/price", json_response({"0xABC::mod::TOK": {"price": "2.0"}}))
        assert SevenKPriceSource(SevenKPriceClient(fetcher)).resolve(TOK).price == 2.0

    def test_zero_price_is_invalid(self):
        fetcher = FakeFetcher().add("GET", "/price", json_response({TOK: {"price": 0}}))
        result = SevenKPriceSource(SevenKPriceClient(fetcher)).resolve(TOK)
        assert result.status is SourceStatus.INVALID

    def test_http_error_is_unavailable_without_retry(self):
        fetcher = FakeFetcher().add("GET", "/price", json_response({}, status_code=500))
        result = SevenKPriceSource(SevenKPriceClient(fetcher)).resolve(TOK)
        assert result.status is SourceStatus.UNAVAILABLE
        assert len(fetcher.calls) == 1

    def test_batch_variant(self):
        fetcher = FakeFetcher().add("GET", "/price", json_response({TOK: 3.25}))
        result = SevenKBatchPriceSource(SevenKPriceClient(fetcher)).resolve(TOK)
        assert result.price == 3.25

    def test_batch_chunks_long_lists(self):
        ids = [f"0x{i}::m::T" for i in range(150)]
        fetcher = FakeFetcher().add("GET", "/price", json_response({}))
        SevenKPriceClient(fetcher).get_prices(ids)
        assert len(fetcher.calls) == 2
        assert len(fetcher.calls[0]["params"]["ids"].split(",")) == 100


# ---------------------------------------------------------------------------
# GeckoTerminal
# ---------------------------------------------------------------------------


def _gt_payload(price_usd, cg_id=None):
    return {"data": {"id": "sui-network_x", "attributes": {"price_usd": price_usd, "coingecko_coin_id": cg_id}}}


class TestGeckoTerminal:
    def test_price_from_attributes(self):
        fetcher = FakeFetcher().add("GET", "/networks/sui-network/tokens/", json_response(_gt_payload("2.5")))
        result = GeckoTerminalPriceSource(fetcher, sleep=_no_sleep).resolve(TOK)
        assert result.price == 2.5
        assert fetcher.calls[0]["url"].endswith("/tokens/0xabc%3A%3Amod%3A%3ATOK")

    def test_null_price_is_unavailable_and_not_retried(self):
        fetcher = FakeFetcher().add("GET", "/tokens/", json_response(_gt_payload(None)))
        result = GeckoTerminalPriceSource(fetcher, sleep=_no_sleep).resolve(TOK)
        assert result.status is SourceStatus.UNAVAILABLE
        assert len(fetcher.calls) == 1

    def test_retryable_status_then_success(self):
        sleeps = []
        fetcher = FakeFetcher().add(
            "GET", "/tokens/", json_response({}, status_code=503), json_response(_gt_payload("4.0"))
        )
        result = GeckoTerminalPriceSource(fetcher, sleep=sleeps.append).resolve(TOK)
        assert result.price == 4.0
        assert sleeps == [0.8]

    def test_malformed_json_retried_then_unavailable(self):
        fetcher = FakeFetcher().add("GET", "/tokens/", raw_response(b"<html>oops</html>"))
        result = GeckoTerminalPriceSource(fetcher, sleep=_no_sleep).resolve(TOK)
        assert result.status is SourceStatus.UNAVAILABLE
        assert len(fetcher.calls) == 2

    def test_not_found_is_unavailable_without_retry(self):
        fetcher = FakeFetcher().add("GET", "/tokens/", json_response({"errors": []}, status_code=404))
        result = GeckoTerminalPriceSource(fetcher, sleep=_no_sleep).resolve(TOK)
        assert result.status is SourceStatus.UNAVAILABLE
        assert len(fetcher.calls) == 1

    def test_timeout_is_unavailable(self):
        fetcher = FakeFetcher().add("GET", "/tokens/", FetchTimeoutError("too slow"))
        result = GeckoTerminalPriceSource(fetcher, sleep=_no_sleep).resolve(TOK)
        assert result.status is SourceStatus.UNAVAILABLE

    def test_coingecko_id_lookup_uses_aux_timeout(self):
        fetcher = FakeFetcher().add("GET", "/tokens/", json_response(_gt_payload(None, "my-token")))
        source = GeckoTerminalPriceSource(fetcher, aux_timeout_ms=5000)
        assert source.lookup_coingecko_id(TOK) == "my-token"
        assert fetcher.calls[0]["timeout_ms"] == 5000


# ---------------------------------------------------------------------------
# Dexscreener
# ---------------------------------------------------------------------------


def _pair(price, liquidity, chain="sui", quote_symbol="USDC", quote_address=USDC):
    return {
        "chainId": chain,
        "dexId": "cetus",
        "priceUsd": price,
        "liquidity": {"usd": liquidity},
        "quoteToken": {"symbol": quote_symbol, "address": quote_address},
    }


class TestDexscreener:
    def test_highest_liquidity_pair_on_chain_wins(self):
        pairs = [_pair("1.10", 1000), _pair("1.20", 5000), _pair("9.99", 1e9, chain="ethereum")]
        fetcher = FakeFetcher().add("GET", "/latest/dex/search", json_response({"pairs": pairs}))
        result = DexscreenerSearchSource(fetcher, sleep=_no_sleep).resolve(TOK)
        assert result.price == 1.20

    def test_falls_back_to_contract_address_query(self):
        fetcher = (
            FakeFetcher()
            .add("GET", "/latest/dex/search", json_response({"pairs": None}), params={"q": TOK})
            .add("GET", "/latest/dex/search", json_response({"pairs": [_pair("0.42", 10)]}), params={"q": "0xabc"})
        )
        result = DexscreenerSearchSource(fetcher, sleep=_no_sleep).resolve(TOK)
        assert result.price == 0.42
        assert [c["params"]["q"] for c in fetcher.calls] == [TOK, "0xabc"]

    def test_no_liquid_pair_scans_for_any_price(self):
        pairs = [_pair(None, 0), _pair("0.5", 0, chain="ethereum")]
        assert select_best_pair(pairs, "sui").value == 0.5

    def test_pairs_without_chain_id_are_accepted(self):
        pair = _pair("7.0", 100)
        del pair["chainId"]
        assert select_best_pair([pair], "sui").value == 7.0

    def test_no_pairs_is_unavailable(self):
        fetcher = FakeFetcher().add("GET", "/latest/dex/search", json_response({"pairs": []}))
        result = DexscreenerSearchSource(fetcher, sleep=_no_sleep).resolve(TOK)
        assert result.status is SourceStatus.UNAVAILABLE

    def test_base_pair_source_prefers_base_quoted_pair(self):
        pairs = [
            _pair("2.0", 10),
            _pair("3.0", 1, quote_symbol="SUI", quote_address="0x2::sui::SUI"),
        ]
        fetcher = FakeFetcher().add("GET", "/latest/dex/search", json_response({"pairs": pairs}))
        source = DexscreenerBasePairSource(fetcher, base_symbol="SUI", base_addresses=["0x2::sui::SUI"])
        assert source.resolve(TOK).price == 3.0

    def test_base_pair_source_falls_back_to_any_pair(self):
        fetcher = FakeFetcher().add("GET", "/latest/dex/search", json_response({"pairs": [_pair("2.0", 10)]}))
        source = DexscreenerBasePairSource(fetcher, base_symbol="SUI")
        assert source.resolve(TOK).price == 2.0


# ---------------------------------------------------------------------------
# Hop aggregator
# ---------------------------------------------------------------------------


class TestHop:
    def test_quote_price_from_amount_out_with_fee(self):
        fetcher = FakeFetcher().add(
            "GET", "/quote", json_response({"amount_out_with_fee": "1234567", "amount_out": "1300000"})
        )
        source = HopQuotePriceSource(fetcher, decimals_lookup=lambda coin: 9, reference_asset=USDC)
        result = source.resolve(TOK)
        assert abs(result.price - 1.234567) < 1e-12
        params = fetcher.calls[0]["params"]
        assert params["token_in"] == TOK
        assert params["token_out"] == USDC
        assert params["amount_in"] == str(10**9)
        assert fetcher.calls[0]["timeout_ms"] == 6000

    def test_amount_out_used_when_fee_field_missing(self):
        assert parse_quote({"amount_out": 2_000_000}, 6).value == 2.0

    def test_empty_quote_is_unavailable(self):
        fetcher = FakeFetcher().add("GET", "/quote", json_response({"amount_out": "0"}))
        result = HopQuotePriceSource(fetcher, decimals_lookup=lambda coin: 6).resolve(TOK)
        assert result.status is SourceStatus.UNAVAILABLE

    def test_no_retry_on_server_error(self):
        fetcher = FakeFetcher().add("GET", "/quote", json_response({}, status_code=502))
        result = HopQuotePriceSource(fetcher, decimals_lookup=lambda coin: 9).resolve(TOK)
        assert result.status is SourceStatus.UNAVAILABLE
        assert len(fetcher.calls) == 1


# ---------------------------------------------------------------------------
# Aftermath
# ---------------------------------------------------------------------------


class TestAftermath:
    def test_price_for_requested_coin(self):
        fetcher = FakeFetcher().add("POST", "/price-info", json_response({TOK: {"price": 0.75}}))
        result = AftermathPriceSource(fetcher).resolve(TOK)
        assert result.price == 0.75
        assert fetcher.calls[0]["json"] == {"coins": [TOK]}

    def test_first_entry_when_key_differs(self):
        fetcher = FakeFetcher().add("POST", "/price-info", json_response({"0xABC::mod::TOK": {"price": 0.8}}))
        assert AftermathPriceSource(fetcher).resolve(TOK).price == 0.8

    def test_negative_price_is_invalid(self):
        fetcher = FakeFetcher().add("POST", "/price-info", json_response({TOK: {"price": -1}}))
        assert AftermathPriceSource(fetcher).resolve(TOK).status is SourceStatus.INVALID
