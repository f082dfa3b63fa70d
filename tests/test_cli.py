"""CLI dispatcher: argument parsing and command wiring (no live network)."""
from __future__ import annotations

import sqlite3

import pytest

import coin_pricer.jobs as jobs
from coin_pricer import __main__ as entry
from coin_pricer.cli.main import main
from tests.fakes import FakeSource, FakeSourceAlwaysFail

TOK = "0xabc::mod::TOK"


@pytest.fixture(autouse=True)
def _no_yaml(monkeypatch, tmp_path):
    monkeypatch.setenv("COIN_PRICER_CONFIG", str(tmp_path / "missing.yaml"))


def _fake_engine(monkeypatch, chain):
    real_open_engine = jobs.open_engine

    def _open(db_path=None, **kwargs):
        return real_open_engine(":memory:", default_chain=chain, overrides={}, resolution_budget_s=0)

    monkeypatch.setattr(jobs, "open_engine", _open)


class TestCli:
    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0
        assert "coin-pricer" in capsys.readouterr().out

    def test_init_db(self, tmp_path, capsys):
        db = tmp_path / "sub" / "prices.sqlite"
        assert main(["--db", str(db), "init-db"]) == 0
        assert db.exists()
        with sqlite3.connect(str(db)) as conn:
            tables = {r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
        assert "tokens" in tables
        assert "Initialized DB" in capsys.readouterr().out

    def test_price_found(self, monkeypatch, capsys):
        _fake_engine(monkeypatch, [FakeSource("s", 2.5)])
        assert main(["price", TOK]) == 0
        assert capsys.readouterr().out.strip() == f"{TOK}\t2.5"

    def test_price_refresh_flag(self, monkeypatch, capsys):
        _fake_engine(monkeypatch, [FakeSource("s", 2.5)])
        assert main(["-v", "price", TOK, "--refresh"]) == 0

    def test_price_not_found(self, monkeypatch, capsys):
        _fake_engine(monkeypatch, [FakeSourceAlwaysFail("s")])
        assert main(["price", TOK]) == 1
        assert "No price found" in capsys.readouterr().err

    def test_refresh_unpriced_empty_db(self, monkeypatch, capsys):
        _fake_engine(monkeypatch, [FakeSource("s", 1.0)])
        assert main(["refresh-unpriced"]) == 0
        assert "total=0" in capsys.readouterr().out

    def test_health_and_history_on_fresh_db(self, tmp_path, capsys):
        db = str(tmp_path / "prices.sqlite")
        assert main(["--db", db, "health"]) == 0
        assert "No source health" in capsys.readouterr().out
        assert main(["--db", db, "history", "--minutes", "5"]) == 0
        assert "No base asset history" in capsys.readouterr().out


class TestModuleEntry:
    def test_python_m_prints_help(self, capsys):
        assert entry.main() == 0
        assert "refresh-unpriced" in capsys.readouterr().out
