"""
Order sizing and commission. Entries size from the strategy's PositionSizing,
exits close the whole open position.
"""

from __future__ import annotations
import logging
import math
from dataclasses import dataclass

from rule_backtester.core.exceptions import ConfigError
from rule_backtester.core.types import SizingMethod
from rule_backtester.strategies.strategy import PositionSizing

logger = logging.getLogger("rule_backtester.risk")

MIN_PRICE = 1e-9


@dataclass
class SizingResult:
    """Result of sizing: allowed or rejected + reason."""
    allowed: bool
    quantity: int = 0
    reason: str = ""


class PositionSizer:
    """
    Quantity sizing: max(1, floor(value)).
    Capital sizing: floor(allocated / price), where allocated is `value` or
    `initial_capital * value / 100` when the value is a percentage.
    """

    def __init__(
        self,
        initial_capital: float,
        commission_per_share: float = 0.01,
        commission_bps: float = 0.0,
    ):
        if commission_per_share < 0 or commission_bps < 0:
            raise ConfigError("Commission rates cannot be negative")
        self.initial_capital = initial_capital
        self.commission_per_share = commission_per_share
        self.commission_bps = commission_bps

    def size_entry(self, sizing: PositionSizing, price: float) -> SizingResult:
        if price <= MIN_PRICE:
            return SizingResult(allowed=False, reason=f"invalid price {price}")
        if sizing.method == SizingMethod.QUANTITY:
            qty = max(1, int(math.floor(sizing.value)))
        else:
            allocated = sizing.value
            if sizing.is_percentage:
                allocated = self.initial_capital * sizing.value / 100.0
            qty = int(math.floor(allocated / price))
        if qty <= 0:
            logger.debug("Entry sized to %d at %.4f (%s %s)", qty, price, sizing.method.value, sizing.value)
            return SizingResult(allowed=False, reason=f"quantity {qty} at price {price:.4f}")
        return SizingResult(allowed=True, quantity=qty)

    def size_exit(self, current_position: int) -> SizingResult:
        qty = abs(int(current_position))
        if qty == 0:
            return SizingResult(allowed=False, reason="no open position to exit")
        return SizingResult(allowed=True, quantity=qty)

    def commission(self, quantity: int, price: float) -> float:
        return self.commission_per_share * quantity + quantity * price * self.commission_bps / 10000.0
