"""Rule: IF condition THEN action."""

from __future__ import annotations
from dataclasses import dataclass

from rule_backtester.core.exceptions import ConfigError
from rule_backtester.core.types import MarketSnapshot, SignalAction
from rule_backtester.strategies.conditions import Condition


@dataclass(frozen=True)
class Rule:
    name: str
    condition: Condition
    action: SignalAction

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ConfigError("Rule name cannot be empty.")
        if self.condition is None:
            raise ConfigError(f"Rule '{self.name}' condition cannot be null.")
        if self.action == SignalAction.NONE:
            raise ConfigError(f"Rule '{self.name}' action cannot be None.")

    def evaluate(self, snapshot: MarketSnapshot) -> SignalAction:
        """The rule's action when its condition holds, else NONE."""
        if self.condition.evaluate(snapshot):
            return self.action
        return SignalAction.NONE

    def describe(self) -> str:
        return f"Rule('{self.name}'): IF ({self.condition.describe()}) THEN {self.action.value}"
