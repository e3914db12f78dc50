"""
Core data types for candles, signals, positions, trades and equity points.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from rule_backtester.core.exceptions import ConfigError


class SignalAction(str, Enum):
    NONE = "None"
    ENTER_LONG = "EnterLong"
    EXIT_LONG = "ExitLong"
    ENTER_SHORT = "EnterShort"
    EXIT_SHORT = "ExitShort"

    @property
    def is_entry(self) -> bool:
        return self in (SignalAction.ENTER_LONG, SignalAction.ENTER_SHORT)

    @property
    def is_exit(self) -> bool:
        return self in (SignalAction.EXIT_LONG, SignalAction.EXIT_SHORT)

    @property
    def is_buy(self) -> bool:
        """EnterLong and ExitShort (cover) take cash out."""
        return self in (SignalAction.ENTER_LONG, SignalAction.EXIT_SHORT)

    @classmethod
    def parse(cls, text: str) -> "SignalAction":
        for action in cls:
            if action.value == text:
                return action
        raise ConfigError(f"Unknown signal action string: {text!r}")


class PositionState(str, Enum):
    FLAT = "Flat"
    LONG = "Long"
    SHORT = "Short"


class SizingMethod(str, Enum):
    QUANTITY = "Quantity"
    CAPITAL_BASED = "CapitalBased"


@dataclass(frozen=True)
class Candle:
    """OHLCV candle."""
    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0
    open_interest: Optional[float] = None


@dataclass(frozen=True)
class MarketSnapshot:
    """
    Point-in-time view a condition is evaluated against. Rebuilt every bar.
    previous_values holds the indicator values of the bar before (empty on the first bar).
    """
    timestamp: datetime
    candle: Optional[Candle]
    indicator_values: dict = field(default_factory=dict)
    previous_values: dict = field(default_factory=dict)
    complete: bool = True


@dataclass
class OpenPositionInfo:
    """Entry details kept while a position is open."""
    entry_time: datetime
    entry_price: float
    entry_quantity: int  # signed: positive long, negative short
    entry_commission: float
    exit_quantity: int = 0
    exit_value: float = 0.0
    exit_commission: float = 0.0


@dataclass(frozen=True)
class Trade:
    """Completed round trip."""
    instrument: str
    entry_action: SignalAction
    entry_time: datetime
    exit_time: datetime
    quantity: int
    entry_price: float
    exit_price: float
    commission: float
    pnl: float
    return_pct: float

    @property
    def is_long(self) -> bool:
        return self.entry_action == SignalAction.ENTER_LONG


@dataclass(frozen=True)
class PortfolioState:
    """One point on the equity curve."""
    timestamp: datetime
    cash: float
    positions_value: float
    total_equity: float
