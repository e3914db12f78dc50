"""
Error taxonomy for backtest runs. Each error names the phase it belongs to.
"""

from __future__ import annotations


class BacktestError(Exception):
    """Base class for all errors raised by the backtester."""
    phase = "backtest"


class ConfigError(BacktestError):
    """Malformed strategy document, unknown indicator/condition, bad sizing."""
    phase = "config"


class DataLoadError(BacktestError):
    """No candles in range or the store could not be read."""
    phase = "data"


class CalculationError(BacktestError):
    """Not enough bars to satisfy an indicator lookback, or indicator failure."""
    phase = "indicators"


class ExecutionError(BacktestError):
    """Invalid trade or insufficient cash. Non-fatal: only the one trade is skipped."""
    phase = "execution"
