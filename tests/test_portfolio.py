"""Unit tests for backtesting.portfolio."""

from datetime import datetime, timedelta, timezone

import pytest

from rule_backtester.backtesting.portfolio import Portfolio
from rule_backtester.core.exceptions import ConfigError, ExecutionError
from rule_backtester.core.types import PositionState, SignalAction

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
T1 = T0 + timedelta(days=1)
T2 = T0 + timedelta(days=2)


def recomputed_pnl(trade):
    entry_value = trade.quantity * trade.entry_price
    exit_value = trade.quantity * trade.exit_price
    if trade.is_long:
        return exit_value - entry_value - trade.commission
    return entry_value - exit_value - trade.commission


def test_initial_capital_must_be_positive():
    with pytest.raises(ConfigError):
        Portfolio(0)


def test_long_round_trip():
    p = Portfolio(10000.0)
    p.record_trade(T0, "BTC", SignalAction.ENTER_LONG, 10, 100.0, 0.1)
    assert p.cash == pytest.approx(10000.0 - 1000.0 - 0.1)
    assert p.position_quantity("BTC") == 10
    assert p.open_position("BTC").entry_price == 100.0
    p.record_trade(T1, "BTC", SignalAction.EXIT_LONG, 10, 110.0, 0.1)
    assert p.cash == pytest.approx(10000.0 + 100.0 - 0.2)
    assert p.positions == {}
    assert p.open_position("BTC") is None
    assert p.execution_count == 2
    (trade,) = p.trade_log
    assert trade.is_long
    assert trade.pnl == pytest.approx(99.8)
    assert trade.return_pct == pytest.approx(99.8 / 1000.0)
    assert trade.pnl == pytest.approx(recomputed_pnl(trade))
    assert trade.entry_time == T0 and trade.exit_time == T1


def test_short_round_trip():
    p = Portfolio(10000.0)
    p.record_trade(T0, "ETH", SignalAction.ENTER_SHORT, 5, 200.0, 0.05)
    assert p.cash == pytest.approx(10000.0 + 1000.0 - 0.05)
    assert p.position_state("ETH") == PositionState.SHORT
    p.record_trade(T1, "ETH", SignalAction.EXIT_SHORT, 5, 180.0, 0.05)
    (trade,) = p.trade_log
    assert not trade.is_long
    assert trade.pnl == pytest.approx(100.0 - 0.1)
    assert trade.pnl == pytest.approx(recomputed_pnl(trade))
    assert p.cash == pytest.approx(10000.0 + trade.pnl)


def test_same_side_add_averages_entry():
    p = Portfolio(10000.0)
    p.record_trade(T0, "BTC", SignalAction.ENTER_LONG, 10, 100.0, 0.1)
    p.record_trade(T1, "BTC", SignalAction.ENTER_LONG, 10, 110.0, 0.1)
    info = p.open_position("BTC")
    assert info.entry_quantity == 20
    assert info.entry_price == pytest.approx(105.0)
    assert info.entry_commission == pytest.approx(0.2)
    assert info.entry_time == T0


def test_partial_exits_then_close():
    p = Portfolio(10000.0)
    p.record_trade(T0, "BTC", SignalAction.ENTER_LONG, 10, 100.0, 0.0)
    p.record_trade(T1, "BTC", SignalAction.EXIT_LONG, 4, 110.0, 0.0)
    assert p.position_quantity("BTC") == 6
    assert p.trade_log == []
    p.record_trade(T2, "BTC", SignalAction.EXIT_LONG, 6, 120.0, 0.0)
    (trade,) = p.trade_log
    assert trade.quantity == 10
    assert trade.exit_price == pytest.approx((4 * 110 + 6 * 120) / 10)
    assert trade.pnl == pytest.approx(160.0)
    assert p.cash == pytest.approx(10160.0)


@pytest.mark.parametrize("action,qty", [
    (SignalAction.EXIT_LONG, 1),
    (SignalAction.EXIT_SHORT, 1),
    (SignalAction.ENTER_LONG, 0),
    (SignalAction.NONE, 1),
])
def test_invalid_trades_rejected_from_flat(action, qty):
    p = Portfolio(10000.0)
    with pytest.raises(ExecutionError):
        p.record_trade(T0, "BTC", action, qty, 100.0, 0.0)
    assert p.cash == 10000.0
    assert p.execution_count == 0


def test_no_direct_flip_and_no_over_exit():
    p = Portfolio(10000.0)
    p.record_trade(T0, "BTC", SignalAction.ENTER_LONG, 10, 100.0, 0.0)
    with pytest.raises(ExecutionError):
        p.record_trade(T1, "BTC", SignalAction.ENTER_SHORT, 10, 100.0, 0.0)
    with pytest.raises(ExecutionError):
        p.record_trade(T1, "BTC", SignalAction.EXIT_LONG, 11, 100.0, 0.0)
    assert p.position_quantity("BTC") == 10


def test_insufficient_cash_leaves_no_trace():
    p = Portfolio(1000.0)
    with pytest.raises(ExecutionError):
        p.record_trade(T0, "BTC", SignalAction.ENTER_LONG, 10, 100.0, 0.1)
    assert p.cash == 1000.0
    assert p.positions == {}
    assert p.open_position("BTC") is None
    assert p.execution_count == 0
    # Exactly affordable is fine.
    p.record_trade(T0, "BTC", SignalAction.ENTER_LONG, 10, 99.0, 10.0)
    assert p.cash == pytest.approx(0.0)


def test_equity_curve_skips_duplicate_timestamps():
    p = Portfolio(10000.0)
    p.record_trade(T0, "BTC", SignalAction.ENTER_LONG, 10, 100.0, 0.0)
    p.record_timestamp_value(T0, {"BTC": 100.0})
    p.record_timestamp_value(T0, {"BTC": 150.0})
    p.record_timestamp_value(T1, {"BTC": 120.0})
    curve = p.equity_curve
    assert len(curve) == 2
    assert curve[0].total_equity == pytest.approx(10000.0)
    assert curve[1].positions_value == pytest.approx(1200.0)
    assert curve[1].total_equity == pytest.approx(curve[1].cash + curve[1].positions_value)
    assert p.current_equity({"BTC": 120.0}) == pytest.approx(10200.0)


def test_missing_price_values_position_at_zero(caplog):
    p = Portfolio(10000.0)
    p.record_trade(T0, "BTC", SignalAction.ENTER_LONG, 10, 100.0, 0.0)
    with caplog.at_level("WARNING", logger="rule_backtester.portfolio"):
        p.record_timestamp_value(T1, {})
    assert p.equity_curve[-1].positions_value == 0.0
    assert "No price for held instrument BTC" in caplog.text
