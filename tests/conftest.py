"""Shared fixtures: candle series and an in-memory candle store."""

from datetime import datetime, timedelta, timezone

import pytest

from rule_backtester.core.types import Candle, MarketSnapshot
from rule_backtester.data.store import SqliteCandleStore

START = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _make_candles(closes, start=START, step=timedelta(days=1)):
    return [
        Candle(
            timestamp=start + i * step,
            open=c,
            high=c + 1.0,
            low=c - 1.0,
            close=c,
            volume=1000.0,
        )
        for i, c in enumerate(closes)
    ]


@pytest.fixture
def make_candles():
    return _make_candles


@pytest.fixture
def snapshot():
    """snapshot(close=..., values={...}, previous={...})"""
    def build(close=100.0, values=None, previous=None, open_=None, with_candle=True):
        candle = None
        if with_candle:
            candle = Candle(START, open_ if open_ is not None else close, close + 1.0, close - 1.0, close)
        return MarketSnapshot(START, candle, dict(values or {}), dict(previous or {}))
    return build


@pytest.fixture
def store():
    s = SqliteCandleStore(":memory:")
    yield s
    s.close()
