"""Relative Strength Index with Wilder smoothing."""

from __future__ import annotations

import numpy as np
import pandas as pd

from rule_backtester.indicators.base import Indicator


class RsiIndicator(Indicator):
    """
    Average gain/loss seeded with the plain mean of the first n changes, then
    smoothed as avg = (prev * (n - 1) + x) / n. RSI is 0 when both averages are 0.
    """

    @property
    def name(self) -> str:
        return f"RSI({self.period})"

    @property
    def lookback(self) -> int:
        return self.period

    def _compute(self, closes: np.ndarray) -> np.ndarray:
        n = self.period
        delta = pd.Series(closes).diff().iloc[1:]
        gains = delta.clip(lower=0).to_numpy()
        losses = (-delta).clip(lower=0).to_numpy()
        avg_gain = self._wilder(gains, n)
        avg_loss = self._wilder(losses, n)
        total = avg_gain + avg_loss
        with np.errstate(divide="ignore", invalid="ignore"):
            rsi = np.where(total > 0, 100.0 * avg_gain / total, 0.0)
        return rsi

    @staticmethod
    def _wilder(values: np.ndarray, n: int) -> np.ndarray:
        tail = values[n - 1:].copy()
        tail[0] = values[:n].mean()
        return pd.Series(tail).ewm(alpha=1.0 / n, adjust=False).mean().to_numpy()
