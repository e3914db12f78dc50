"""Unit tests for core.config and core.logger."""

import logging
from pathlib import Path

from rule_backtester.core.config import load_config
from rule_backtester.core.logger import setup_logging


def test_load_config_from_yaml(tmp_path, monkeypatch):
    for key in ("DATABASE_PATH", "INITIAL_CAPITAL", "COMMISSION_PER_SHARE", "COMMISSION_BPS", "LOG_LEVEL", "USE_TESTNET"):
        monkeypatch.delenv(key, raising=False)
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text(
        "data:\n  database: db/candles.db\n"
        "backtest:\n  initial_capital: 50000\n  commission_per_share: 0.005\n  start_date: '2024-01-01'\n"
        "logging:\n  level: DEBUG\n",
        encoding="utf-8",
    )
    cfg = load_config(cfg_path, tmp_path)
    assert cfg.database_path == Path("db/candles.db")
    assert cfg.initial_capital == 50000
    assert cfg.commission_per_share == 0.005
    assert cfg.commission_bps == 0.0
    assert cfg.backtest_start == "2024-01-01"
    assert cfg.backtest_end is None
    assert cfg.log_level == "DEBUG"


def test_env_overrides_yaml(tmp_path, monkeypatch):
    (tmp_path / "config.yaml").write_text("backtest:\n  initial_capital: 50000\n", encoding="utf-8")
    monkeypatch.setenv("INITIAL_CAPITAL", "25000")
    monkeypatch.setenv("DATABASE_PATH", "/tmp/x.db")
    cfg = load_config(None, tmp_path)
    assert cfg.initial_capital == 25000.0
    assert cfg.database_path == Path("/tmp/x.db")


def test_defaults_without_file(tmp_path, monkeypatch):
    monkeypatch.delenv("INITIAL_CAPITAL", raising=False)
    monkeypatch.delenv("COMMISSION_PER_SHARE", raising=False)
    cfg = load_config(tmp_path / "missing.yaml", tmp_path)
    assert cfg.initial_capital == 100000.0
    assert cfg.commission_per_share == 0.01


def test_setup_logging_writes_file(tmp_path):
    root = setup_logging("INFO", tmp_path, "run.log", file_level="DEBUG")
    try:
        logging.getLogger("rule_backtester.portfolio").debug("hello file")
        for h in root.handlers:
            h.flush()
        assert "hello file" in (tmp_path / "run.log").read_text(encoding="utf-8")
    finally:
        for h in list(root.handlers):
            h.close()
            root.removeHandler(h)
        root.setLevel(logging.NOTSET)
