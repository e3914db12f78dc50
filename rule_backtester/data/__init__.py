"""Market data: candle store and historical candle clients."""

from rule_backtester.data.base import CandleStore, MarketDataClient
from rule_backtester.data.store import SqliteCandleStore

__all__ = ["CandleStore", "MarketDataClient", "SqliteCandleStore"]
