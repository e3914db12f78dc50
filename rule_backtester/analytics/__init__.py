"""Performance metrics."""

from rule_backtester.analytics.metrics import (
    BacktestMetrics,
    compute_backtest_metrics,
    max_drawdown,
    profit_factor,
    sharpe_ratio,
    win_rate,
)

__all__ = [
    "BacktestMetrics",
    "compute_backtest_metrics",
    "max_drawdown",
    "profit_factor",
    "sharpe_ratio",
    "win_rate",
]
