"""
Build a Strategy from its JSON document.

The document is validated with pydantic (conditions are a discriminated union on
`type`), then converted into frozen condition objects. Any problem raises
ConfigError and no partial Strategy is returned.

    {
      "strategy_name": "SMA Cross",
      "instruments": ["BTCUSDT"],
      "timeframes": ["1d"],
      "position_sizing": {"method": "Quantity", "value": 10},
      "entry_rules": [{"rule_name": "golden", "action": "EnterLong",
                       "condition": {"type": "CrossesAbove",
                                     "indicator1": "SMA(10)", "indicator2": "SMA(20)"}}],
      "exit_rules": [...]
    }
"""

from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError, model_validator

from rule_backtester.core.exceptions import ConfigError
from rule_backtester.core.types import SignalAction, SizingMethod
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

logger = logging.getLogger("rule_backtester.strategy.builder")


# =============================================================================
# Document models
# =============================================================================


class PriceConditionDoc(BaseModel):
    """Candle field vs literal (`value`) or vs another field (`field2`)."""

    type: Literal["Price"] = "Price"
    field1: str
    op: str
    value: Optional[float] = None
    field2: Optional[str] = None

    @model_validator(mode="after")
    def check_rhs(self) -> "PriceConditionDoc":
        if self.value is None and self.field2 is None:
            raise ValueError("Price condition needs 'value' or 'field2'")
        return self

    def to_condition(self) -> Condition:
        field = PriceField.parse(self.field1)
        op = ComparisonOp.parse(self.op)
        if self.value is not None:
            return PriceVsValue(field, op, self.value)
        return PriceVsPrice(field, op, PriceField.parse(self.field2))


class IndicatorConditionDoc(BaseModel):
    """Indicator vs literal (`value`) or vs another indicator (`indicator2`)."""

    type: Literal["Indicator"] = "Indicator"
    indicator1: str
    op: str
    value: Optional[float] = None
    indicator2: Optional[str] = None

    @model_validator(mode="after")
    def check_rhs(self) -> "IndicatorConditionDoc":
        if self.value is None and self.indicator2 is None:
            raise ValueError("Indicator condition needs 'value' or 'indicator2'")
        return self

    def to_condition(self) -> Condition:
        op = ComparisonOp.parse(self.op)
        if self.value is not None:
            return IndicatorVsValue(self.indicator1, op, self.value)
        return IndicatorVsIndicator(self.indicator1, op, self.indicator2)


class PriceIndicatorConditionDoc(BaseModel):
    type: Literal["PriceIndicator"] = "PriceIndicator"
    field: str
    op: str
    indicator: str

    def to_condition(self) -> Condition:
        return PriceVsIndicator(PriceField.parse(self.field), ComparisonOp.parse(self.op), self.indicator)


class CrossConditionDoc(BaseModel):
    type: Literal["CrossesAbove", "CrossesBelow"]
    indicator1: str
    indicator2: str

    def to_condition(self) -> Condition:
        return IndicatorCross(self.indicator1, CrossDirection(self.type), self.indicator2)


class CompositeConditionDoc(BaseModel):
    type: Literal["AND", "OR"]
    conditions: List["ConditionDoc"] = Field(min_length=1)

    def to_condition(self) -> Condition:
        children = tuple(c.to_condition() for c in self.conditions)
        if self.type == "AND":
            return AndCondition(children)
        return OrCondition(children)


ConditionDoc = Annotated[
    Union[
        PriceConditionDoc,
        IndicatorConditionDoc,
        PriceIndicatorConditionDoc,
        CrossConditionDoc,
        CompositeConditionDoc,
    ],
    Field(discriminator="type"),
]

CompositeConditionDoc.model_rebuild()


class RuleDoc(BaseModel):
    rule_name: str
    action: str
    condition: ConditionDoc

    def to_rule(self) -> Rule:
        return Rule(self.rule_name, self.condition.to_condition(), SignalAction.parse(self.action))


class SizingDoc(BaseModel):
    method: SizingMethod = SizingMethod.QUANTITY
    value: float = 1.0
    is_percentage: bool = False


class StrategyDoc(BaseModel):
    strategy_name: str
    instruments: List[str] = Field(min_length=1)
    timeframes: List[str] = Field(min_length=1)
    position_sizing: SizingDoc = Field(default_factory=SizingDoc)
    entry_rules: List[RuleDoc] = Field(min_length=1)
    exit_rules: List[RuleDoc] = Field(default_factory=list)


# =============================================================================
# Build
# =============================================================================


def build_strategy(doc: dict, strategy_logger: Optional[logging.Logger] = None) -> Strategy:
    """Validate a strategy document and build the Strategy. Raises ConfigError."""
    try:
        parsed = StrategyDoc.model_validate(doc)
    except ValidationError as e:
        raise ConfigError(f"Invalid strategy document: {e}") from e

    try:
        entry = [r.to_rule() for r in parsed.entry_rules]
        exit_ = [r.to_rule() for r in parsed.exit_rules]
        sizing = PositionSizing(
            method=parsed.position_sizing.method,
            value=parsed.position_sizing.value,
            is_percentage=parsed.position_sizing.is_percentage,
        )
        strategy = Strategy(
            name=parsed.strategy_name,
            instruments=parsed.instruments,
            timeframes=parsed.timeframes,
            entry_rules=entry,
            exit_rules=exit_,
            sizing=sizing,
            logger=strategy_logger,
        )
    except ConfigError:
        raise
    except (ValueError, TypeError) as e:
        raise ConfigError(f"Invalid strategy '{parsed.strategy_name}': {e}") from e

    logger.info(
        "Built strategy '%s': %d entry / %d exit rules, indicators=%s",
        strategy.name, len(entry), len(exit_), strategy.required_indicator_names,
    )
    return strategy


def load_strategy_file(path: Path, strategy_logger: Optional[logging.Logger] = None) -> Strategy:
    """Read a JSON strategy file and build it."""
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            doc = json.load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read strategy file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Strategy file {path} is not valid JSON: {e}") from e
    if not isinstance(doc, dict):
        raise ConfigError(f"Strategy file {path} must contain a JSON object")
    return build_strategy(doc, strategy_logger)
