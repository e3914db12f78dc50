"""Backtest driver and portfolio ledger."""

from rule_backtester.backtesting.portfolio import Portfolio
from rule_backtester.backtesting.engine import Backtester, BacktestResult

__all__ = ["Portfolio", "Backtester", "BacktestResult"]
