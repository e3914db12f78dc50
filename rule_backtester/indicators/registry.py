"""Resolve indicator names such as 'SMA(20)' to Indicator instances."""

from __future__ import annotations
import re
from typing import Dict, Type

from rule_backtester.core.exceptions import ConfigError
from rule_backtester.indicators.base import Indicator
from rule_backtester.indicators.moving_average import EmaIndicator, SmaIndicator
from rule_backtester.indicators.rsi import RsiIndicator

_NAME_RE = re.compile(r"^\s*([A-Za-z_]+)\((-?\d+)\)\s*$")

INDICATORS: Dict[str, Type[Indicator]] = {
    "SMA": SmaIndicator,
    "EMA": EmaIndicator,
    "RSI": RsiIndicator,
}


def parse_indicator_name(name: str) -> tuple[str, int]:
    m = _NAME_RE.match(name or "")
    if m is None:
        raise ConfigError(f"Cannot parse indicator name {name!r}; expected NAME(period)")
    return m.group(1).upper(), int(m.group(2))


def create_indicator(name: str) -> Indicator:
    """'SMA(10)' -> SmaIndicator(10). Raises ConfigError on unknown type or non-positive period."""
    kind, period = parse_indicator_name(name)
    cls = INDICATORS.get(kind)
    if cls is None:
        raise ConfigError(f"Unsupported indicator type '{kind}' in {name!r}")
    if period <= 0:
        raise ConfigError(f"Indicator period must be positive in {name!r}")
    return cls(period)
