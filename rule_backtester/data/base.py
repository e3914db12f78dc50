"""Abstract market data interfaces: candle storage and a historical candle source."""

from __future__ import annotations
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Sequence

from rule_backtester.core.types import Candle


class CandleStore(ABC):
    """Persistent candle storage keyed on (instrument, interval, timestamp)."""

    @abstractmethod
    def query_candles(self, instrument: str, interval: str, start: datetime, end: datetime) -> List[Candle]:
        """Candles with start <= timestamp <= end, ascending. Raises DataLoadError on storage failure."""
        pass

    @abstractmethod
    def save_candles(self, candles: Sequence[Candle], instrument: str, interval: str) -> bool:
        """Insert candles; existing (instrument, interval, timestamp) rows are left untouched."""
        pass

    def close(self) -> None:
        """Release resources. Default no-op."""
        return None


class MarketDataClient(ABC):
    """Remote source of historical candles."""

    @abstractmethod
    def get_historical_candles(
        self,
        instrument: str,
        interval: str,
        start: datetime,
        end: datetime,
    ) -> List[Candle]:
        """Candles for [start, end], ascending."""
        pass
