"""Indicator provider: SMA, EMA, RSI and the name registry."""

from rule_backtester.indicators.base import Indicator
from rule_backtester.indicators.moving_average import EmaIndicator, SmaIndicator
from rule_backtester.indicators.rsi import RsiIndicator
from rule_backtester.indicators.registry import create_indicator, parse_indicator_name

__all__ = [
    "Indicator",
    "EmaIndicator",
    "SmaIndicator",
    "RsiIndicator",
    "create_indicator",
    "parse_indicator_name",
]
