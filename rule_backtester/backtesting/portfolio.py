"""
Portfolio ledger: cash, one net position per instrument, round-trip trades and
the equity curve.

Invariants: cash never goes negative; a rejected trade leaves no trace; the
PnL of every closed trade reconciles with its stored prices, quantity and
commission.
"""

from __future__ import annotations
import logging
from datetime import datetime
from typing import Dict, List, Mapping, Optional

from rule_backtester.core.exceptions import ConfigError, ExecutionError
from rule_backtester.core.types import (
    OpenPositionInfo,
    PortfolioState,
    PositionState,
    SignalAction,
    Trade,
)


class Portfolio:
    """Single-account ledger. All fills are immediate and complete."""

    def __init__(self, initial_capital: float, logger: Optional[logging.Logger] = None):
        if initial_capital <= 0:
            raise ConfigError(f"Initial capital must be positive, got {initial_capital}")
        self.initial_capital = initial_capital
        self.logger = logger or logging.getLogger("rule_backtester.portfolio")
        self._cash = float(initial_capital)
        self._positions: Dict[str, int] = {}
        self._open: Dict[str, OpenPositionInfo] = {}
        self._trades: List[Trade] = []
        self._equity_curve: List[PortfolioState] = []
        self._executions = 0

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def cash(self) -> float:
        return self._cash

    @property
    def positions(self) -> Dict[str, int]:
        return dict(self._positions)

    def position_quantity(self, instrument: str) -> int:
        return self._positions.get(instrument, 0)

    def position_state(self, instrument: str) -> PositionState:
        qty = self.position_quantity(instrument)
        if qty > 0:
            return PositionState.LONG
        if qty < 0:
            return PositionState.SHORT
        return PositionState.FLAT

    def open_position(self, instrument: str) -> Optional[OpenPositionInfo]:
        return self._open.get(instrument)

    @property
    def trade_log(self) -> List[Trade]:
        return list(self._trades)

    @property
    def equity_curve(self) -> List[PortfolioState]:
        return list(self._equity_curve)

    @property
    def execution_count(self) -> int:
        return self._executions

    def positions_value(self, prices: Mapping[str, float]) -> float:
        value = 0.0
        for instrument, qty in self._positions.items():
            price = prices.get(instrument)
            if price is None:
                self.logger.warning("No price for held instrument %s; valuing position at 0", instrument)
                continue
            value += qty * price
        return value

    def current_equity(self, prices: Mapping[str, float]) -> float:
        return self._cash + self.positions_value(prices)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def record_trade(
        self,
        timestamp: datetime,
        instrument: str,
        action: SignalAction,
        quantity: int,
        price: float,
        commission: float = 0.0,
    ) -> None:
        """
        Apply one fill. Raises ExecutionError (and changes nothing) when the
        trade is not allowed from the current position or would overdraw cash.
        """
        if quantity <= 0:
            self._reject(f"quantity must be positive, got {quantity}")
        if price <= 0:
            self._reject(f"price must be positive, got {price}")
        if commission < 0:
            self._reject(f"commission cannot be negative, got {commission}")

        current = self.position_quantity(instrument)
        if action == SignalAction.ENTER_LONG:
            if current < 0:
                self._reject(f"EnterLong on {instrument} while short {current}")
            delta = quantity
        elif action == SignalAction.ENTER_SHORT:
            if current > 0:
                self._reject(f"EnterShort on {instrument} while long {current}")
            delta = -quantity
        elif action == SignalAction.EXIT_LONG:
            if current <= 0:
                self._reject(f"ExitLong on {instrument} without a long position")
            if quantity > current:
                self._reject(f"ExitLong {quantity} exceeds long position {current} on {instrument}")
            delta = -quantity
        elif action == SignalAction.EXIT_SHORT:
            if current >= 0:
                self._reject(f"ExitShort on {instrument} without a short position")
            if quantity > -current:
                self._reject(f"ExitShort {quantity} exceeds short position {-current} on {instrument}")
            delta = quantity
        else:
            self._reject(f"cannot record action {action.value}")

        notional = quantity * price
        if action.is_buy:
            cash_delta = -(notional + commission)
        else:
            cash_delta = notional - commission
        if self._cash + cash_delta < 0:
            self._reject(
                f"insufficient cash for {action.value} {quantity} {instrument} @ {price:.4f}: "
                f"need {-cash_delta:.2f}, have {self._cash:.2f}"
            )

        # Validated; apply.
        self._cash += cash_delta
        self._executions += 1
        new_qty = current + delta
        if new_qty == 0:
            self._positions.pop(instrument, None)
        else:
            self._positions[instrument] = new_qty

        if action.is_entry:
            self._apply_entry(timestamp, instrument, current, delta, price, commission)
        else:
            self._apply_exit(timestamp, instrument, new_qty, quantity, price, commission)

        self.logger.info(
            "%s %s %d @ %.4f (commission %.4f) cash=%.2f position=%d",
            action.value, instrument, quantity, price, commission, self._cash, new_qty,
        )

    def record_timestamp_value(self, timestamp: datetime, prices: Mapping[str, float]) -> None:
        """Append a point to the equity curve unless one already exists for this timestamp."""
        if self._equity_curve and self._equity_curve[-1].timestamp == timestamp:
            return
        positions_value = self.positions_value(prices)
        self._equity_curve.append(PortfolioState(
            timestamp=timestamp,
            cash=self._cash,
            positions_value=positions_value,
            total_equity=self._cash + positions_value,
        ))

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _reject(self, reason: str) -> None:
        self.logger.warning("Trade rejected: %s", reason)
        raise ExecutionError(reason)

    def _apply_entry(
        self,
        timestamp: datetime,
        instrument: str,
        previous_qty: int,
        delta: int,
        price: float,
        commission: float,
    ) -> None:
        info = self._open.get(instrument)
        if previous_qty == 0 or info is None:
            self._open[instrument] = OpenPositionInfo(
                entry_time=timestamp,
                entry_price=price,
                entry_quantity=delta,
                entry_commission=commission,
            )
            return
        total = abs(info.entry_quantity) + abs(delta)
        info.entry_price = (abs(info.entry_quantity) * info.entry_price + abs(delta) * price) / total
        info.entry_quantity += delta
        info.entry_commission += commission

    def _apply_exit(
        self,
        timestamp: datetime,
        instrument: str,
        remaining: int,
        quantity: int,
        price: float,
        commission: float,
    ) -> None:
        info = self._open[instrument]
        info.exit_quantity += quantity
        info.exit_value += quantity * price
        info.exit_commission += commission
        if remaining != 0:
            return

        qty = abs(info.entry_quantity)
        entry_value = qty * info.entry_price
        exit_value = info.exit_value
        exit_price = exit_value / info.exit_quantity
        total_commission = info.entry_commission + info.exit_commission
        is_long = info.entry_quantity > 0
        if is_long:
            pnl = exit_value - entry_value - total_commission
        else:
            pnl = entry_value - exit_value - total_commission
        return_pct = pnl / entry_value if entry_value != 0 else 0.0

        trade = Trade(
            instrument=instrument,
            entry_action=SignalAction.ENTER_LONG if is_long else SignalAction.ENTER_SHORT,
            entry_time=info.entry_time,
            exit_time=timestamp,
            quantity=qty,
            entry_price=info.entry_price,
            exit_price=exit_price,
            commission=total_commission,
            pnl=pnl,
            return_pct=return_pct,
        )
        self._trades.append(trade)
        del self._open[instrument]
        self.logger.info(
            "Closed %s %s x%d: entry %.4f exit %.4f pnl %.2f (%.2f%%)",
            "LONG" if is_long else "SHORT", instrument, qty, trade.entry_price, exit_price, pnl, return_pct * 100,
        )
