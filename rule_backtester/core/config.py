"""
Load configuration from config.yaml and .env. API keys only from env.
"""

from __future__ import annotations
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv


def _env_path(project_root: Optional[Path] = None) -> Path:
    root = project_root or Path(__file__).resolve().parents[2]
    return root / ".env"


def load_dotenv_if_exists(project_root: Optional[Path] = None) -> None:
    """Load .env from project root if present."""
    path = _env_path(project_root)
    if path.exists():
        load_dotenv(path)


def load_config(config_path: Optional[Path] = None, project_root: Optional[Path] = None) -> "Config":
    """Load config.yaml and overlay with env. Returns Config."""
    load_dotenv_if_exists(project_root)
    root = project_root or Path(__file__).resolve().parents[2]
    path = config_path or root / "config.yaml"
    data: dict[str, Any] = {}
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

    def env(key: str, default: str = "") -> str:
        return os.getenv(key, default).strip()

    def env_bool(key: str, default: bool = False) -> bool:
        return os.getenv(key, str(default)).lower() in ("true", "1", "yes")

    def env_float(key: str, default: float = 0.0) -> float:
        try:
            return float(os.getenv(key, str(default)))
        except ValueError:
            return default

    api = data.get("api", {})
    backtest = data.get("backtest", {})
    db = data.get("data", {})
    logging_cfg = data.get("logging", {})

    use_testnet = env_bool("USE_TESTNET", api.get("use_testnet", False))
    if use_testnet:
        binance_api_key = env("BINANCE_TESTNET_API_KEY") or env("BINANCE_API_KEY")
        binance_api_secret = env("BINANCE_TESTNET_API_SECRET") or env("BINANCE_API_SECRET")
    else:
        binance_api_key = env("BINANCE_MAINNET_API_KEY") or env("BINANCE_API_KEY")
        binance_api_secret = env("BINANCE_MAINNET_API_SECRET") or env("BINANCE_API_SECRET")

    return Config(
        binance_api_key=binance_api_key,
        binance_api_secret=binance_api_secret,
        use_testnet=use_testnet,
        # Data
        database_path=Path(env("DATABASE_PATH", str(db.get("database", "data/market_data.db")))),
        # Backtest
        initial_capital=env_float("INITIAL_CAPITAL", backtest.get("initial_capital", 100000.0)),
        commission_per_share=env_float("COMMISSION_PER_SHARE", backtest.get("commission_per_share", 0.01)),
        commission_bps=env_float("COMMISSION_BPS", backtest.get("commission_bps", 0.0)),
        backtest_start=backtest.get("start_date"),
        backtest_end=backtest.get("end_date"),
        # Logging
        log_level=env("LOG_LEVEL", logging_cfg.get("level", "INFO")),
        log_file_level=logging_cfg.get("file_level", "DEBUG"),
        log_dir=Path(logging_cfg.get("log_dir", "logs")),
        log_file=logging_cfg.get("log_file", "rule_backtester.log"),
    )


class Config:
    """Unified configuration. Immutable after load."""

    __slots__ = (
        "binance_api_key", "binance_api_secret", "use_testnet",
        "database_path",
        "initial_capital", "commission_per_share", "commission_bps",
        "backtest_start", "backtest_end",
        "log_level", "log_file_level", "log_dir", "log_file",
    )

    def __init__(
        self,
        binance_api_key: str = "",
        binance_api_secret: str = "",
        use_testnet: bool = False,
        database_path: Path = None,
        initial_capital: float = 100000.0,
        commission_per_share: float = 0.01,
        commission_bps: float = 0.0,
        backtest_start: Optional[str] = None,
        backtest_end: Optional[str] = None,
        log_level: str = "INFO",
        log_file_level: str = "DEBUG",
        log_dir: Path = None,
        log_file: str = "rule_backtester.log",
    ):
        self.binance_api_key = binance_api_key
        self.binance_api_secret = binance_api_secret
        self.use_testnet = use_testnet
        self.database_path = Path(database_path) if database_path else Path("data/market_data.db")
        self.initial_capital = initial_capital
        self.commission_per_share = commission_per_share
        self.commission_bps = commission_bps
        self.backtest_start = backtest_start
        self.backtest_end = backtest_end
        self.log_level = log_level
        self.log_file_level = log_file_level
        self.log_dir = Path(log_dir) if log_dir else Path("logs")
        self.log_file = log_file
