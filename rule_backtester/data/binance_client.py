"""
Binance historical klines with retry and rate-limit handling.
"""

from __future__ import annotations
import functools
import logging
import time
from datetime import datetime, timezone
from typing import List

from binance.client import Client
from binance.exceptions import BinanceAPIException

from rule_backtester.core.exceptions import DataLoadError
from rule_backtester.core.types import Candle
from rule_backtester.data.base import MarketDataClient
from rule_backtester.utils.timeframes import to_binance_interval

logger = logging.getLogger("rule_backtester.data.binance")


def retry_on_rate_limit(max_retries: int = 3, base_delay: float = 1.0):
    """Decorator: retry on 429 or 418 (rate limit) with exponential backoff."""
    def decorator(f):
        @functools.wraps(f)
        def wrapped(*args, **kwargs):
            last_exc = None
            for attempt in range(max_retries):
                try:
                    return f(*args, **kwargs)
                except BinanceAPIException as e:
                    last_exc = e
                    if e.status_code in (429, 418) and attempt < max_retries - 1:
                        delay = base_delay * (2 ** attempt)
                        logger.warning("Rate limited, retry in %.1fs (attempt %d)", delay, attempt + 1)
                        time.sleep(delay)
                    else:
                        raise
            raise last_exc
        return wrapped
    return decorator


def _ms(ts: datetime) -> int:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return int(ts.timestamp() * 1000)


def kline_to_candle(row: list) -> Candle:
    """Binance kline row: [open_time_ms, open, high, low, close, volume, close_time, ...]."""
    return Candle(
        timestamp=datetime.fromtimestamp(int(row[0]) / 1000, tz=timezone.utc),
        open=float(row[1]),
        high=float(row[2]),
        low=float(row[3]),
        close=float(row[4]),
        volume=float(row[5]),
    )


class BinanceKlinesClient(MarketDataClient):
    """Binance USDT-M Futures klines (testnet or live)."""

    def __init__(self, api_key: str = "", api_secret: str = "", testnet: bool = False, client: Client = None):
        self._client = client or Client(api_key or None, api_secret or None, testnet=testnet)
        logger.info("Binance klines client: using %s", "TESTNET" if testnet else "LIVE")

    @retry_on_rate_limit(max_retries=3, base_delay=1.0)
    def _fetch(self, symbol: str, interval: str, start_ms: int, end_ms: int) -> list:
        return self._client.futures_historical_klines(
            symbol=symbol, interval=interval, start_str=start_ms, end_str=end_ms,
        )

    def get_historical_candles(
        self,
        instrument: str,
        interval: str,
        start: datetime,
        end: datetime,
    ) -> List[Candle]:
        binance_interval = to_binance_interval(interval)
        try:
            raw = self._fetch(instrument, binance_interval, _ms(start), _ms(end))
        except BinanceAPIException as e:
            raise DataLoadError(f"Binance klines failed for {instrument} {binance_interval}: {e}") from e
        candles = [kline_to_candle(row) for row in raw]
        logger.info("Fetched %d candles for %s %s", len(candles), instrument, binance_interval)
        return candles
