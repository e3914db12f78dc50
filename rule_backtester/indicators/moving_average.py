"""Simple and exponential moving averages over closes."""

from __future__ import annotations

import numpy as np
import pandas as pd
from numpy.lib.stride_tricks import sliding_window_view

from rule_backtester.indicators.base import Indicator


class SmaIndicator(Indicator):
    @property
    def name(self) -> str:
        return f"SMA({self.period})"

    @property
    def lookback(self) -> int:
        return self.period - 1

    def _compute(self, closes: np.ndarray) -> np.ndarray:
        return sliding_window_view(closes, self.period).mean(axis=1)


class EmaIndicator(Indicator):
    """EMA with alpha = 2 / (n + 1), seeded with the SMA of the first n closes."""

    @property
    def name(self) -> str:
        return f"EMA({self.period})"

    @property
    def lookback(self) -> int:
        return self.period - 1

    def _compute(self, closes: np.ndarray) -> np.ndarray:
        n = self.period
        tail = closes[n - 1:].copy()
        tail[0] = closes[:n].mean()
        return pd.Series(tail).ewm(alpha=2.0 / (n + 1), adjust=False).mean().to_numpy()
