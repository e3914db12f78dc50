"""Unit tests for strategies.rules and strategies.strategy."""

import pytest

from rule_backtester.core.exceptions import ConfigError
from rule_backtester.core.types import PositionState, SignalAction, SizingMethod
from rule_backtester.strategies.conditions import ComparisonOp, PriceField, PriceVsValue
from rule_backtester.strategies.rules import Rule
from rule_backtester.strategies.strategy import PositionSizing, Strategy


def close_above(x):
    return PriceVsValue(PriceField.CLOSE, ComparisonOp.GT, x)


def close_below(x):
    return PriceVsValue(PriceField.CLOSE, ComparisonOp.LT, x)


def make_strategy(entry, exit_=()):
    return Strategy("test", ["BTCUSDT"], ["1d"], entry, exit_)


def test_rule_returns_action_or_none(snapshot):
    rule = Rule("breakout", close_above(100), SignalAction.ENTER_LONG)
    assert rule.evaluate(snapshot(close=105)) == SignalAction.ENTER_LONG
    assert rule.evaluate(snapshot(close=95)) == SignalAction.NONE
    assert rule.describe() == "Rule('breakout'): IF (Close > 100) THEN EnterLong"


def test_rule_validation():
    with pytest.raises(ConfigError):
        Rule("", close_above(100), SignalAction.ENTER_LONG)
    with pytest.raises(ConfigError):
        Rule("r", None, SignalAction.ENTER_LONG)
    with pytest.raises(ConfigError):
        Rule("r", close_above(100), SignalAction.NONE)


def test_close_above_100_sequence(snapshot):
    strategy = make_strategy(
        [Rule("enter", close_above(100), SignalAction.ENTER_LONG)],
        [Rule("exit", close_below(95), SignalAction.EXIT_LONG)],
    )
    assert strategy.evaluate(snapshot(close=90)) == SignalAction.NONE
    assert strategy.position_state == PositionState.FLAT
    assert strategy.evaluate(snapshot(close=105)) == SignalAction.ENTER_LONG
    assert strategy.position_state == PositionState.LONG
    # Long now: entry rules are not consulted, 98 does not trigger the exit.
    assert strategy.evaluate(snapshot(close=98)) == SignalAction.NONE
    assert strategy.evaluate(snapshot(close=110)) == SignalAction.NONE
    assert strategy.evaluate(snapshot(close=90)) == SignalAction.EXIT_LONG
    assert strategy.position_state == PositionState.FLAT


def test_first_entry_rule_wins(snapshot):
    strategy = make_strategy([
        Rule("short first", close_above(100), SignalAction.ENTER_SHORT),
        Rule("long second", close_above(100), SignalAction.ENTER_LONG),
    ])
    assert strategy.evaluate(snapshot(close=105)) == SignalAction.ENTER_SHORT
    assert strategy.position_state == PositionState.SHORT


def test_exit_rule_must_match_side(snapshot):
    strategy = make_strategy(
        [Rule("enter", close_above(100), SignalAction.ENTER_LONG)],
        [
            Rule("cover", close_above(0), SignalAction.EXIT_SHORT),
            Rule("sell", close_above(0), SignalAction.EXIT_LONG),
        ],
    )
    strategy.evaluate(snapshot(close=105))
    assert strategy.evaluate(snapshot(close=105)) == SignalAction.EXIT_LONG


def test_exit_rules_ignored_when_flat(snapshot):
    strategy = make_strategy(
        [Rule("enter", close_above(1000), SignalAction.ENTER_LONG)],
        [Rule("sell", close_above(0), SignalAction.EXIT_LONG)],
    )
    assert strategy.evaluate(snapshot(close=105)) == SignalAction.NONE


def test_sync_position(snapshot):
    strategy = make_strategy([Rule("enter", close_above(100), SignalAction.ENTER_LONG)])
    strategy.evaluate(snapshot(close=105))
    strategy.sync_position(PositionState.FLAT)
    assert strategy.position_state == PositionState.FLAT
    assert strategy.evaluate(snapshot(close=105)) == SignalAction.ENTER_LONG


def test_required_indicator_names():
    from rule_backtester.strategies.conditions import CrossDirection, IndicatorCross, IndicatorVsValue
    strategy = make_strategy(
        [Rule("x", IndicatorCross("SMA(10)", CrossDirection.ABOVE, "SMA(20)"), SignalAction.ENTER_LONG)],
        [Rule("y", IndicatorVsValue("RSI(14)", ComparisonOp.GT, 70), SignalAction.EXIT_LONG)],
    )
    assert strategy.required_indicator_names == ["RSI(14)", "SMA(10)", "SMA(20)"]


def test_strategy_validation():
    rule = Rule("enter", close_above(100), SignalAction.ENTER_LONG)
    with pytest.raises(ConfigError):
        Strategy("", ["A"], ["1d"], [rule])
    with pytest.raises(ConfigError):
        Strategy("s", [], ["1d"], [rule])
    with pytest.raises(ConfigError):
        Strategy("s", ["A"], [], [rule])
    with pytest.raises(ConfigError):
        Strategy("s", ["A"], ["1d"], [])


def test_position_sizing_validation():
    with pytest.raises(ConfigError):
        PositionSizing(SizingMethod.QUANTITY, 0)
    with pytest.raises(ConfigError):
        PositionSizing(SizingMethod.CAPITAL_BASED, 150, is_percentage=True)
    with pytest.raises(ConfigError):
        PositionSizing(SizingMethod.QUANTITY, float("nan"))
    with pytest.raises(ConfigError):
        PositionSizing(SizingMethod.CAPITAL_BASED, float("inf"))
    assert PositionSizing().method == SizingMethod.QUANTITY


def test_describe_lists_entry_and_exit_rules():
    strategy = Strategy(
        "Breakout", ["BTCUSDT", "ETHUSDT"], ["1d", "4h"],
        [Rule("up", close_above(100), SignalAction.ENTER_LONG)],
        [Rule("down", close_below(95), SignalAction.EXIT_LONG)],
    )
    assert strategy.describe().splitlines() == [
        "Strategy 'Breakout' on BTCUSDT, ETHUSDT [1d, 4h]",
        "  Entry rules:",
        "    Rule('up'): IF (Close > 100) THEN EnterLong",
        "  Exit rules:",
        "    Rule('down'): IF (Close < 95) THEN ExitLong",
    ]
