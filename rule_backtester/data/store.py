"""
SQLite candle store. Timestamps are stored as UTC epoch seconds; naive datetimes
are taken to be UTC. Use ":memory:" for a throwaway database.
"""

from __future__ import annotations
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence, Union

from rule_backtester.core.exceptions import DataLoadError
from rule_backtester.core.types import Candle
from rule_backtester.data.base import CandleStore

MEMORY = ":memory:"


def to_epoch(ts: datetime) -> int:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return int(ts.timestamp())


def from_epoch(seconds: int) -> datetime:
    return datetime.fromtimestamp(int(seconds), tz=timezone.utc)


class SqliteCandleStore(CandleStore):
    def __init__(self, path: Union[str, Path] = MEMORY, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("rule_backtester.data.store")
        self.path = str(path)
        if self.path != MEMORY:
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        try:
            self._conn = sqlite3.connect(self.path)
            self._ensure_schema()
        except sqlite3.Error as e:
            raise DataLoadError(f"Cannot open candle database {self.path}: {e}") from e
        self.logger.debug("Candle store opened: %s", self.path)

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "SqliteCandleStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _ensure_schema(self) -> None:
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS historical_candles (
              instrument_key TEXT NOT NULL,
              interval TEXT NOT NULL,
              timestamp INTEGER NOT NULL,
              open REAL NOT NULL,
              high REAL NOT NULL,
              low REAL NOT NULL,
              close REAL NOT NULL,
              volume REAL NOT NULL DEFAULT 0,
              open_interest REAL,
              PRIMARY KEY (instrument_key, interval, timestamp)
            );
            """
        )
        self._conn.commit()

    def query_candles(self, instrument: str, interval: str, start: datetime, end: datetime) -> List[Candle]:
        try:
            rows = self._conn.execute(
                """
                SELECT timestamp, open, high, low, close, volume, open_interest
                FROM historical_candles
                WHERE instrument_key = ? AND interval = ? AND timestamp >= ? AND timestamp <= ?
                ORDER BY timestamp ASC
                """,
                (instrument, interval, to_epoch(start), to_epoch(end)),
            ).fetchall()
        except sqlite3.Error as e:
            raise DataLoadError(f"Candle query failed for {instrument} {interval}: {e}") from e
        self.logger.debug("Loaded %d candles for %s %s", len(rows), instrument, interval)
        return [
            Candle(
                timestamp=from_epoch(ts),
                open=o, high=h, low=l, close=c,
                volume=v or 0.0,
                open_interest=oi,
            )
            for ts, o, h, l, c, v, oi in rows
        ]

    def save_candles(self, candles: Sequence[Candle], instrument: str, interval: str) -> bool:
        rows = [
            (instrument, interval, to_epoch(c.timestamp), c.open, c.high, c.low, c.close, c.volume, c.open_interest)
            for c in candles
        ]
        try:
            with self._conn:
                cur = self._conn.executemany(
                    """
                    INSERT OR IGNORE INTO historical_candles
                      (instrument_key, interval, timestamp, open, high, low, close, volume, open_interest)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    rows,
                )
        except sqlite3.Error as e:
            self.logger.error("Saving %d candles for %s %s failed: %s", len(rows), instrument, interval, e)
            return False
        self.logger.info("Saved %d/%d new candles for %s %s", max(cur.rowcount, 0), len(rows), instrument, interval)
        return True
