"""Unit tests for data.store."""

from datetime import datetime, timedelta, timezone

from rule_backtester.data.store import SqliteCandleStore, from_epoch, to_epoch

UTC = timezone.utc


def test_save_and_query_round_range(store, make_candles):
    candles = make_candles([100, 101, 102, 103, 104])
    assert store.save_candles(candles, "BTCUSDT", "1d")
    got = store.query_candles(
        "BTCUSDT", "1d",
        datetime(2024, 1, 2, tzinfo=UTC),
        datetime(2024, 1, 4, 23, 59, 59, tzinfo=UTC),
    )
    assert [c.close for c in got] == [101, 102, 103]
    assert got[0].timestamp == datetime(2024, 1, 2, tzinfo=UTC)
    assert got[0].high == 102 and got[0].low == 100 and got[0].volume == 1000


def test_save_is_idempotent(store, make_candles):
    candles = make_candles([100, 101, 102])
    assert store.save_candles(candles, "BTCUSDT", "1d")
    assert store.save_candles(candles, "BTCUSDT", "1d")
    got = store.query_candles("BTCUSDT", "1d", datetime(2024, 1, 1, tzinfo=UTC), datetime(2024, 12, 31, tzinfo=UTC))
    assert len(got) == 3


def test_keys_separate_instruments_and_intervals(store, make_candles):
    store.save_candles(make_candles([1, 2]), "BTCUSDT", "1d")
    store.save_candles(make_candles([3, 4, 5]), "ETHUSDT", "1d")
    store.save_candles(make_candles([6], step=timedelta(hours=1)), "BTCUSDT", "1h")
    lo, hi = datetime(2024, 1, 1, tzinfo=UTC), datetime(2024, 12, 31, tzinfo=UTC)
    assert len(store.query_candles("BTCUSDT", "1d", lo, hi)) == 2
    assert len(store.query_candles("ETHUSDT", "1d", lo, hi)) == 3
    assert len(store.query_candles("BTCUSDT", "1h", lo, hi)) == 1
    assert store.query_candles("SOLUSDT", "1d", lo, hi) == []


def test_query_returns_ascending(store, make_candles):
    candles = make_candles([1, 2, 3])
    store.save_candles(list(reversed(candles)), "BTCUSDT", "1d")
    got = store.query_candles("BTCUSDT", "1d", datetime(2024, 1, 1, tzinfo=UTC), datetime(2024, 1, 31, tzinfo=UTC))
    assert [c.close for c in got] == [1, 2, 3]


def test_naive_datetimes_are_utc():
    naive = datetime(2024, 3, 1, 12, 0, 0)
    assert to_epoch(naive) == to_epoch(naive.replace(tzinfo=UTC))
    assert from_epoch(to_epoch(naive)) == naive.replace(tzinfo=UTC)


def test_file_database_persists(tmp_path, make_candles):
    path = tmp_path / "sub" / "candles.db"
    with SqliteCandleStore(path) as s:
        s.save_candles(make_candles([1, 2]), "BTCUSDT", "1d")
    with SqliteCandleStore(path) as s:
        got = s.query_candles("BTCUSDT", "1d", datetime(2024, 1, 1, tzinfo=UTC), datetime(2024, 1, 2, tzinfo=UTC))
    assert len(got) == 2
