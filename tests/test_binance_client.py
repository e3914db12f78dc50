"""Unit tests for data.binance_client (no network: the python-binance Client is faked)."""

from datetime import datetime, timezone

import pytest
from binance.exceptions import BinanceAPIException

from rule_backtester.core.exceptions import DataLoadError
from rule_backtester.data import binance_client
from rule_backtester.data.binance_client import BinanceKlinesClient, kline_to_candle, retry_on_rate_limit

UTC = timezone.utc
ROW = [1704067200000, "100.0", "105.0", "99.0", "104.0", "12.5", 1704153599999, "0", 10, "0", "0", "0"]


class FakeResponse:
    def __init__(self, status_code):
        self.status_code = status_code
        self.text = '{"code": -1003, "msg": "Too many requests"}'


def api_error(status):
    return BinanceAPIException(FakeResponse(status), status, FakeResponse(status).text)


class FakeClient:
    def __init__(self, failures=0, status=429):
        self.failures = failures
        self.status = status
        self.calls = []

    def futures_historical_klines(self, symbol, interval, start_str, end_str):
        self.calls.append((symbol, interval, start_str, end_str))
        if self.failures:
            self.failures -= 1
            raise api_error(self.status)
        return [ROW]


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr(binance_client.time, "sleep", lambda s: None)


def test_kline_to_candle():
    c = kline_to_candle(ROW)
    assert c.timestamp == datetime(2024, 1, 1, tzinfo=UTC)
    assert (c.open, c.high, c.low, c.close, c.volume) == (100.0, 105.0, 99.0, 104.0, 12.5)


def test_get_historical_candles_maps_interval():
    fake = FakeClient()
    client = BinanceKlinesClient(client=fake)
    candles = client.get_historical_candles(
        "BTCUSDT", "day", datetime(2024, 1, 1, tzinfo=UTC), datetime(2024, 1, 1, 23, 59, 59, tzinfo=UTC),
    )
    assert len(candles) == 1
    symbol, interval, start_ms, end_ms = fake.calls[0]
    assert (symbol, interval) == ("BTCUSDT", "1d")
    assert start_ms == 1704067200000
    assert end_ms == 1704153599000


def test_retries_on_rate_limit():
    fake = FakeClient(failures=2)
    client = BinanceKlinesClient(client=fake)
    assert len(client.get_historical_candles("BTCUSDT", "1h", datetime(2024, 1, 1), datetime(2024, 1, 2))) == 1
    assert len(fake.calls) == 3


def test_non_rate_limit_error_becomes_data_load_error():
    fake = FakeClient(failures=1, status=400)
    client = BinanceKlinesClient(client=fake)
    with pytest.raises(DataLoadError):
        client.get_historical_candles("BTCUSDT", "1h", datetime(2024, 1, 1), datetime(2024, 1, 2))
    assert len(fake.calls) == 1


def test_retry_gives_up():
    calls = []

    @retry_on_rate_limit(max_retries=2, base_delay=0.0)
    def always_limited():
        calls.append(1)
        raise api_error(418)

    with pytest.raises(BinanceAPIException):
        always_limited()
    assert len(calls) == 2
