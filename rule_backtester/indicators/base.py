"""Abstract indicator: a named series computed over a candle list with a fixed lookback."""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Sequence

import numpy as np

from rule_backtester.core.exceptions import CalculationError, ConfigError
from rule_backtester.core.types import Candle


class Indicator(ABC):
    """
    result[i] aligns to candles[i + lookback]; the first `lookback` candles have no value.
    """

    def __init__(self, period: int):
        if not isinstance(period, int) or period <= 0:
            raise ConfigError(f"{type(self).__name__} period must be a positive integer, got {period!r}")
        self.period = period
        self._result = np.empty(0, dtype=float)

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @property
    @abstractmethod
    def lookback(self) -> int:
        """Number of leading candles with no output."""
        pass

    @abstractmethod
    def _compute(self, closes: np.ndarray) -> np.ndarray:
        pass

    @property
    def result(self) -> np.ndarray:
        return self._result

    def calculate(self, candles: Sequence[Candle]) -> np.ndarray:
        """Compute over closes. Raises CalculationError when there are not enough candles."""
        needed = self.lookback + 1
        if len(candles) < needed:
            raise CalculationError(
                f"{self.name} needs at least {needed} candles, got {len(candles)}"
            )
        closes = np.array([c.close for c in candles], dtype=float)
        self._result = self._compute(closes)
        return self._result

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"
