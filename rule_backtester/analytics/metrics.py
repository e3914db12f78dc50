"""
Performance metrics: Sharpe, max drawdown, win rate, profit factor, average win/loss.
Sharpe uses per-bar equity returns; trade statistics use round-trip PnLs.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

from rule_backtester.core.types import PortfolioState, Trade

EPSILON = 1e-9


@dataclass
class BacktestMetrics:
    """Aggregate performance of one run."""
    initial_capital: float
    final_equity: float
    total_pnl: float
    total_return_pct: float  # fraction, 0.10 = 10%
    max_drawdown_pct: float  # fraction in [0, 1]
    sharpe_ratio: float
    total_executions: int
    round_trip_trades: int
    winning_trades: int
    losing_trades: int
    win_rate: float
    profit_factor: float
    avg_win_pnl: float
    avg_loss_pnl: float


def sharpe_ratio(returns: Sequence[float], risk_free_rate: float = 0.0, periods_per_year: float = 252.0) -> float:
    """Annualized Sharpe. returns = list of period returns."""
    if len(returns) == 0:
        return 0.0
    arr = np.asarray(returns, dtype=float)
    excess = arr - risk_free_rate / periods_per_year
    if excess.std() <= 1e-12:
        return 0.0
    return float(np.sqrt(periods_per_year) * excess.mean() / excess.std())


def max_drawdown(equity: Sequence[float], initial_capital: float) -> float:
    """
    Largest peak-to-trough fall as a fraction of the peak (0.15 = 15%).
    The running peak starts at initial_capital.
    """
    if len(equity) == 0:
        return 0.0
    arr = np.asarray(equity, dtype=float)
    peak = np.maximum.accumulate(np.maximum(arr, initial_capital))
    dd = np.where(peak > 0, (peak - arr) / np.where(peak > 0, peak, 1.0), 0.0)
    return float(np.clip(dd.max(), 0.0, 1.0))


def win_rate(pnls: Sequence[float]) -> float:
    """Fraction of trades with positive PnL. Break-even trades count in the denominator only."""
    if not pnls:
        return 0.0
    return sum(1 for p in pnls if p > 0) / len(pnls)


def profit_factor(pnls: Sequence[float]) -> float:
    """Gross profit / gross loss. inf with profit but no losses, 0 with neither."""
    wins = sum(p for p in pnls if p > 0)
    losses = sum(-p for p in pnls if p < 0)
    if losses <= EPSILON:
        return float("inf") if wins > EPSILON else 0.0
    return wins / losses


def equity_returns(equity: Sequence[float]) -> List[float]:
    """Simple per-bar returns of an equity series."""
    arr = np.asarray(equity, dtype=float)
    if len(arr) < 2:
        return []
    prev = arr[:-1]
    return np.where(prev != 0, np.diff(arr) / np.where(prev != 0, prev, 1.0), 0.0).tolist()


def compute_backtest_metrics(
    equity_curve: Sequence[PortfolioState],
    trades: Sequence[Trade],
    initial_capital: float,
    total_executions: int = 0,
    periods_per_year: float = 252.0,
) -> BacktestMetrics:
    """Derive all metrics from the ledger's equity curve and trade log."""
    equity = [p.total_equity for p in equity_curve]
    final_equity = equity[-1] if equity else initial_capital
    total_pnl = final_equity - initial_capital
    total_return_pct = total_pnl / initial_capital if initial_capital else 0.0

    pnls = [t.pnl for t in trades]
    wins = [p for p in pnls if p > 0]
    losses = [p for p in pnls if p < 0]

    return BacktestMetrics(
        initial_capital=initial_capital,
        final_equity=final_equity,
        total_pnl=total_pnl,
        total_return_pct=total_return_pct,
        max_drawdown_pct=max_drawdown(equity, initial_capital),
        sharpe_ratio=sharpe_ratio(equity_returns(equity), periods_per_year=periods_per_year),
        total_executions=total_executions,
        round_trip_trades=len(pnls),
        winning_trades=len(wins),
        losing_trades=len(losses),
        win_rate=win_rate(pnls),
        profit_factor=profit_factor(pnls),
        avg_win_pnl=sum(wins) / len(wins) if wins else 0.0,
        avg_loss_pnl=sum(losses) / len(losses) if losses else 0.0,
    )
