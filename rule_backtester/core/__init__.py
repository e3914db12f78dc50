"""Core: config, types, errors, logging."""

from rule_backtester.core.config import load_config, Config
from rule_backtester.core.exceptions import (
    BacktestError,
    ConfigError,
    DataLoadError,
    CalculationError,
    ExecutionError,
)
from rule_backtester.core.types import (
    Candle,
    MarketSnapshot,
    OpenPositionInfo,
    PortfolioState,
    PositionState,
    SignalAction,
    SizingMethod,
    Trade,
)
from rule_backtester.core.logger import setup_logging

__all__ = [
    "load_config",
    "Config",
    "BacktestError",
    "ConfigError",
    "DataLoadError",
    "CalculationError",
    "ExecutionError",
    "Candle",
    "MarketSnapshot",
    "OpenPositionInfo",
    "PortfolioState",
    "PositionState",
    "SignalAction",
    "SizingMethod",
    "Trade",
    "setup_logging",
]
