"""
Rule-driven strategy with a single-position state machine.

Flat -> Long (EnterLong), Flat -> Short (EnterShort), Long -> Flat (ExitLong),
Short -> Flat (ExitShort). Entry rules are only checked when flat, exit rules
only when in a position; the first matching rule wins.
"""

from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

from rule_backtester.core.exceptions import ConfigError
from rule_backtester.core.types import MarketSnapshot, PositionState, SignalAction, SizingMethod
from rule_backtester.strategies.rules import Rule

_EXIT_FOR_STATE = {
    PositionState.LONG: SignalAction.EXIT_LONG,
    PositionState.SHORT: SignalAction.EXIT_SHORT,
}

_STATE_AFTER = {
    SignalAction.ENTER_LONG: PositionState.LONG,
    SignalAction.ENTER_SHORT: PositionState.SHORT,
    SignalAction.EXIT_LONG: PositionState.FLAT,
    SignalAction.EXIT_SHORT: PositionState.FLAT,
}


@dataclass(frozen=True)
class PositionSizing:
    """How many units an entry buys: a fixed quantity, or capital (absolute or % of initial)."""
    method: SizingMethod = SizingMethod.QUANTITY
    value: float = 1.0
    is_percentage: bool = False

    def __post_init__(self) -> None:
        if not math.isfinite(self.value) or self.value <= 0:
            raise ConfigError(f"Position sizing value must be positive, got {self.value}")
        if self.method == SizingMethod.CAPITAL_BASED and self.is_percentage and self.value > 100:
            raise ConfigError(f"Capital percentage cannot exceed 100, got {self.value}")


class Strategy:
    """Named set of entry/exit rules over one or more instruments and timeframes."""

    def __init__(
        self,
        name: str,
        instruments: Sequence[str],
        timeframes: Sequence[str],
        entry_rules: Sequence[Rule],
        exit_rules: Sequence[Rule] = (),
        sizing: Optional[PositionSizing] = None,
        logger: Optional[logging.Logger] = None,
    ):
        if not name or not name.strip():
            raise ConfigError("Strategy name cannot be empty.")
        if not instruments:
            raise ConfigError(f"Strategy '{name}' must have at least one instrument.")
        if not timeframes:
            raise ConfigError(f"Strategy '{name}' must have at least one timeframe.")
        if not entry_rules:
            raise ConfigError(f"Strategy '{name}' must have at least one entry rule.")
        self.name = name
        self.instruments: List[str] = list(instruments)
        self.timeframes: List[str] = list(timeframes)
        self.entry_rules: List[Rule] = list(entry_rules)
        self.exit_rules: List[Rule] = list(exit_rules)
        self.sizing = sizing or PositionSizing()
        self.logger = logger or logging.getLogger("rule_backtester.strategy")
        self._state = PositionState.FLAT

        names = set()
        for rule in self.entry_rules + self.exit_rules:
            names |= rule.condition.indicator_names()
        self.required_indicator_names: List[str] = sorted(names)

    @property
    def position_state(self) -> PositionState:
        return self._state

    @property
    def primary_instrument(self) -> str:
        return self.instruments[0]

    @property
    def primary_timeframe(self) -> str:
        return self.timeframes[0]

    def evaluate(self, snapshot: MarketSnapshot) -> SignalAction:
        """
        Return at most one action for this bar and move the state machine on
        immediately (fills are assumed at the bar close).
        """
        if self._state == PositionState.FLAT:
            action = self._first_match(self.entry_rules, snapshot, entry=True)
        else:
            action = self._first_match(self.exit_rules, snapshot, entry=False)
        if action != SignalAction.NONE:
            previous = self._state
            self._state = _STATE_AFTER[action]
            self.logger.debug("%s: %s -> %s on %s", self.name, previous.value, self._state.value, action.value)
        return action

    def sync_position(self, state: PositionState) -> None:
        """Realign the state machine with the ledger after an action could not be filled."""
        if state != self._state:
            self.logger.info("%s: position state resynced %s -> %s", self.name, self._state.value, state.value)
        self._state = state

    def reset(self) -> None:
        self._state = PositionState.FLAT

    def _first_match(self, rules: List[Rule], snapshot: MarketSnapshot, entry: bool) -> SignalAction:
        wanted = None if entry else _EXIT_FOR_STATE[self._state]
        for rule in rules:
            action = rule.evaluate(snapshot)
            if action == SignalAction.NONE:
                continue
            if entry and action.is_entry:
                self.logger.debug("Rule '%s' triggered %s", rule.name, action.value)
                return action
            if not entry and action == wanted:
                self.logger.debug("Rule '%s' triggered %s", rule.name, action.value)
                return action
        return SignalAction.NONE

    def describe(self) -> str:
        lines = [f"Strategy '{self.name}' on {', '.join(self.instruments)} [{', '.join(self.timeframes)}]"]
        lines.append("  Entry rules:")
        lines.extend(f"    {r.describe()}" for r in self.entry_rules)
        lines.append("  Exit rules:")
        lines.extend(f"    {r.describe()}" for r in self.exit_rules)
        return "\n".join(lines)
