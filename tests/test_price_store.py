"""
SQLite price cache: upserts, freshness and the zero sentinel.
"""
from __future__ import annotations

import sqlite3

import pytest

from coin_pricer.core.errors import CacheError, ValidationError
from coin_pricer.db.migrations import run_migrations
from coin_pricer.db.price_store import PriceCacheStore, SqlitePriceBackend
from tests.fakes import FAKE_NOW_MS, FakeClock

TOK = "0xabc::mod::TOK"
TTL = 5 * 60 * 1000


@pytest.fixture
def temp_db():
    conn = sqlite3.connect(":memory:")
    run_migrations(conn)
    yield conn
    conn.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(temp_db, clock):
    return PriceCacheStore(SqlitePriceBackend(temp_db), clock=clock)


class TestMigrations:
    def test_idempotent(self, temp_db):
        run_migrations(temp_db)
        run_migrations(temp_db)
        tables = {r[0] for r in temp_db.execute("SELECT name FROM sqlite_master WHERE type='table'")}
        assert {"tokens", "price_history", "coingecko_ids", "source_health"} <= tables
        cols = {r[1] for r in temp_db.execute("PRAGMA table_info(tokens)")}
        assert "source" in cols


class TestPriceCacheStore:
    def test_put_then_get(self, store):
        record = store.put(TOK, 1.5, {"source": "sevenk"})
        assert record.last_update_ms == FAKE_NOW_MS
        got = store.get(TOK)
        assert got.price_usd == 1.5
        assert got.last_update_ms == FAKE_NOW_MS
        assert got.metadata == {"source": "sevenk"}

    def test_get_missing_is_none(self, store):
        assert store.get("0xnope::m::X") is None

    def test_put_overwrites_and_merges_metadata(self, store, clock):
        store.put(TOK, 1.0, {"name": "Token", "source": "sevenk"})
        clock.advance(1000)
        store.put(TOK, 2.0, {"source": "aftermath"})
        got = store.get(TOK)
        assert got.price_usd == 2.0
        assert got.last_update_ms == FAKE_NOW_MS + 1000
        assert got.metadata == {"name": "Token", "source": "aftermath"}

    @pytest.mark.parametrize("bad", [0, -1.0, float("nan"), float("inf"), True])
    def test_put_rejects_invalid_price(self, store, bad):
        with pytest.raises(ValidationError):
            store.put(TOK, bad)
        assert store.get(TOK) is None

    def test_freshness_window(self, store, clock):
        store.put(TOK, 1.5)
        assert store.is_fresh(TOK, TTL)
        clock.advance(TTL)
        assert store.fresh_price(TOK, TTL) == 1.5
        clock.advance(1)
        assert not store.is_fresh(TOK, TTL)
        assert store.fresh_price(TOK, TTL) is None

    def test_zero_price_never_fresh(self, store, temp_db):
        store.backend.upsert_record(TOK, 0.0, FAKE_NOW_MS, {})
        assert not store.is_fresh(TOK, TTL)

    def test_reads_have_no_side_effects(self, store, temp_db):
        store.fresh_price(TOK, TTL)
        store.get(TOK)
        assert temp_db.execute("SELECT COUNT(*) FROM tokens").fetchone()[0] == 0


class TestSqlitePriceBackend:
    def test_list_unpriced(self, temp_db):
        backend = SqlitePriceBackend(temp_db)
        backend.ensure_token("0xa::m::A")
        backend.upsert_record("0xb::m::B", 1.0, FAKE_NOW_MS, {})
        temp_db.execute("INSERT INTO tokens (coin_type, price_usd) VALUES ('0xc::m::C', NULL)")
        temp_db.commit()
        assert backend.list_unpriced() == ["0xa::m::A", "0xc::m::C"]

    def test_history_window(self, temp_db):
        backend = SqlitePriceBackend(temp_db)
        backend.append_history(TOK, 1.0, 1000)
        backend.append_history(TOK, 2.0, 2000)
        backend.append_history("0xother::m::O", 9.0, 2000)
        assert backend.history(TOK, 1500) == [(2000, 2.0)]
        assert backend.history(TOK, 0) == [(1000, 1.0), (2000, 2.0)]

    def test_sqlite_errors_become_cache_error(self):
        conn = sqlite3.connect(":memory:")
        backend = SqlitePriceBackend(conn)
        with pytest.raises(CacheError):
            backend.get_record(TOK)
        conn.close()
