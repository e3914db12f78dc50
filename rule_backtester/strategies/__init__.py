"""Strategy rule engine: conditions, rules, strategy state machine, JSON builder."""

from rule_backtester.strategies.conditions import (
    AndCondition,
    ComparisonOp,
    Condition,
    CrossDirection,
    IndicatorCross,
    IndicatorVsIndicator,
    IndicatorVsValue,
    OrCondition,
    PriceField,
    PriceVsIndicator,
    PriceVsPrice,
    PriceVsValue,
)
from rule_backtester.strategies.rules import Rule
from rule_backtester.strategies.strategy import PositionSizing, Strategy
from rule_backtester.strategies.builder import build_strategy, load_strategy_file

__all__ = [
    "AndCondition",
    "ComparisonOp",
    "Condition",
    "CrossDirection",
    "IndicatorCross",
    "IndicatorVsIndicator",
    "IndicatorVsValue",
    "OrCondition",
    "PriceField",
    "PriceVsIndicator",
    "PriceVsPrice",
    "PriceVsValue",
    "Rule",
    "PositionSizing",
    "Strategy",
    "build_strategy",
    "load_strategy_file",
]
