"""
Condition tree: leaf comparisons over the current candle and indicator values,
crossovers over current + previous values, and And/Or composites.

Every condition is a frozen dataclass and a pure function of a MarketSnapshot.
Missing data never raises; the condition simply does not trigger.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Set, Tuple, Union

from rule_backtester.core.exceptions import ConfigError
from rule_backtester.core.types import Candle, MarketSnapshot

logger = logging.getLogger("rule_backtester.strategy.conditions")

EQ_TOLERANCE = 1e-9


class ComparisonOp(str, Enum):
    GT = ">"
    LT = "<"
    GTE = ">="
    LTE = "<="
    EQ = "=="

    def apply(self, left: float, right: float) -> bool:
        if self is ComparisonOp.GT:
            return left > right
        if self is ComparisonOp.LT:
            return left < right
        if self is ComparisonOp.GTE:
            return left >= right
        if self is ComparisonOp.LTE:
            return left <= right
        return abs(left - right) < EQ_TOLERANCE

    @classmethod
    def parse(cls, text: str) -> "ComparisonOp":
        """Accepts symbols ('>') and names ('GT')."""
        token = text.strip()
        for op in cls:
            if token == op.value or token.upper() == op.name:
                return op
        raise ConfigError(f"Unknown comparison operator string: {text!r}")


class PriceField(str, Enum):
    OPEN = "Open"
    HIGH = "High"
    LOW = "Low"
    CLOSE = "Close"

    def of(self, candle: Candle) -> float:
        return getattr(candle, self.name.lower())

    @classmethod
    def parse(cls, text: str) -> "PriceField":
        token = text.strip().lower()
        for f in cls:
            if f.value.lower() == token:
                return f
        raise ConfigError(f"Unknown price field string: {text!r}")


class CrossDirection(str, Enum):
    ABOVE = "CrossesAbove"
    BELOW = "CrossesBelow"


def _require_name(name: str, what: str) -> None:
    if not isinstance(name, str) or not name.strip():
        raise ConfigError(f"{what} cannot be empty.")


@dataclass(frozen=True)
class PriceVsValue:
    """Candle field compared with a literal, e.g. Close > 100."""
    field: PriceField
    op: ComparisonOp
    value: float

    def evaluate(self, snapshot: MarketSnapshot) -> bool:
        if snapshot.candle is None:
            return False
        return self.op.apply(self.field.of(snapshot.candle), self.value)

    def describe(self) -> str:
        return f"{self.field.value} {self.op.value} {self.value:g}"

    def indicator_names(self) -> Set[str]:
        return set()


@dataclass(frozen=True)
class PriceVsPrice:
    """Candle field compared with another field of the same candle, e.g. Close > Open."""
    field: PriceField
    op: ComparisonOp
    other: PriceField

    def evaluate(self, snapshot: MarketSnapshot) -> bool:
        if snapshot.candle is None:
            return False
        return self.op.apply(self.field.of(snapshot.candle), self.other.of(snapshot.candle))

    def describe(self) -> str:
        return f"{self.field.value} {self.op.value} {self.other.value}"

    def indicator_names(self) -> Set[str]:
        return set()


@dataclass(frozen=True)
class IndicatorVsValue:
    indicator: str
    op: ComparisonOp
    value: float

    def __post_init__(self) -> None:
        _require_name(self.indicator, "Indicator name")

    def evaluate(self, snapshot: MarketSnapshot) -> bool:
        current = snapshot.indicator_values.get(self.indicator)
        if current is None:
            logger.debug("%s: '%s' not in snapshot", self.describe(), self.indicator)
            return False
        return self.op.apply(current, self.value)

    def describe(self) -> str:
        return f"{self.indicator} {self.op.value} {self.value:g}"

    def indicator_names(self) -> Set[str]:
        return {self.indicator}


@dataclass(frozen=True)
class IndicatorVsIndicator:
    indicator: str
    op: ComparisonOp
    other: str

    def __post_init__(self) -> None:
        _require_name(self.indicator, "Indicator name")
        _require_name(self.other, "Indicator name")
        if self.indicator == self.other:
            raise ConfigError(f"Cannot compare indicator '{self.indicator}' to itself.")

    def evaluate(self, snapshot: MarketSnapshot) -> bool:
        left = snapshot.indicator_values.get(self.indicator)
        right = snapshot.indicator_values.get(self.other)
        if left is None or right is None:
            return False
        return self.op.apply(left, right)

    def describe(self) -> str:
        return f"{self.indicator} {self.op.value} {self.other}"

    def indicator_names(self) -> Set[str]:
        return {self.indicator, self.other}


@dataclass(frozen=True)
class PriceVsIndicator:
    """Candle field compared with an indicator, e.g. Close > SMA(20)."""
    field: PriceField
    op: ComparisonOp
    indicator: str

    def __post_init__(self) -> None:
        _require_name(self.indicator, "Indicator name")

    def evaluate(self, snapshot: MarketSnapshot) -> bool:
        if snapshot.candle is None:
            return False
        value = snapshot.indicator_values.get(self.indicator)
        if value is None:
            return False
        return self.op.apply(self.field.of(snapshot.candle), value)

    def describe(self) -> str:
        return f"{self.field.value} {self.op.value} {self.indicator}"

    def indicator_names(self) -> Set[str]:
        return {self.indicator}


@dataclass(frozen=True)
class IndicatorCross:
    """
    ABOVE: prev(first) <= prev(second) and now(first) > now(second).
    BELOW: prev(first) >= prev(second) and now(first) < now(second).
    """
    first: str
    direction: CrossDirection
    second: str

    def __post_init__(self) -> None:
        _require_name(self.first, "Indicator name")
        _require_name(self.second, "Indicator name")
        if self.first == self.second:
            raise ConfigError(f"Cannot check cross of indicator '{self.first}' with itself.")

    def evaluate(self, snapshot: MarketSnapshot) -> bool:
        now1 = snapshot.indicator_values.get(self.first)
        now2 = snapshot.indicator_values.get(self.second)
        prev1 = snapshot.previous_values.get(self.first)
        prev2 = snapshot.previous_values.get(self.second)
        if now1 is None or now2 is None or prev1 is None or prev2 is None:
            logger.debug("%s: missing current or previous values", self.describe())
            return False
        if self.direction is CrossDirection.ABOVE:
            return prev1 <= prev2 and now1 > now2
        return prev1 >= prev2 and now1 < now2

    def describe(self) -> str:
        return f"{self.first} {self.direction.value} {self.second}"

    def indicator_names(self) -> Set[str]:
        return {self.first, self.second}


@dataclass(frozen=True)
class AndCondition:
    """All children true. A None child counts as false."""
    conditions: Tuple[Optional["Condition"], ...]

    def __post_init__(self) -> None:
        if not self.conditions:
            raise ConfigError("AndCondition must receive at least one condition.")
        object.__setattr__(self, "conditions", tuple(self.conditions))

    def evaluate(self, snapshot: MarketSnapshot) -> bool:
        for condition in self.conditions:
            if condition is None or not condition.evaluate(snapshot):
                return False
        return True

    def describe(self) -> str:
        return _join(self.conditions, "AND")

    def indicator_names(self) -> Set[str]:
        return _collect(self.conditions)


@dataclass(frozen=True)
class OrCondition:
    """Any child true. None children are skipped."""
    conditions: Tuple[Optional["Condition"], ...]

    def __post_init__(self) -> None:
        if not self.conditions:
            raise ConfigError("OrCondition must receive at least one condition.")
        object.__setattr__(self, "conditions", tuple(self.conditions))

    def evaluate(self, snapshot: MarketSnapshot) -> bool:
        for condition in self.conditions:
            if condition is not None and condition.evaluate(snapshot):
                return True
        return False

    def describe(self) -> str:
        return _join(self.conditions, "OR")

    def indicator_names(self) -> Set[str]:
        return _collect(self.conditions)


Condition = Union[
    PriceVsValue,
    PriceVsPrice,
    IndicatorVsValue,
    IndicatorVsIndicator,
    PriceVsIndicator,
    IndicatorCross,
    AndCondition,
    OrCondition,
]


def _join(conditions: Sequence[Optional[Condition]], word: str) -> str:
    parts = [c.describe() if c is not None else "NullCondition" for c in conditions]
    return "(" + f" {word} ".join(parts) + ")"


def _collect(conditions: Sequence[Optional[Condition]]) -> Set[str]:
    names: Set[str] = set()
    for c in conditions:
        if c is not None:
            names |= c.indicator_names()
    return names
