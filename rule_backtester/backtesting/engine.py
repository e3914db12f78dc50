"""
Backtest driver: event-driven, one bar at a time, fills at the bar close.

Indicator series are computed once over the whole range and read back with
their lookback offset, so bar i only ever sees values built from bars <= i.
"""

from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from rule_backtester.analytics.metrics import BacktestMetrics, compute_backtest_metrics
from rule_backtester.backtesting.portfolio import Portfolio
from rule_backtester.core.exceptions import BacktestError, ConfigError, DataLoadError, ExecutionError
from rule_backtester.core.types import Candle, MarketSnapshot, PortfolioState, SignalAction, Trade
from rule_backtester.data.base import CandleStore
from rule_backtester.indicators.base import Indicator
from rule_backtester.indicators.registry import create_indicator
from rule_backtester.risk.sizing import PositionSizer
from rule_backtester.strategies.builder import build_strategy, load_strategy_file
from rule_backtester.strategies.strategy import Strategy
from rule_backtester.utils.timeframes import periods_per_year

StrategySource = Union[Strategy, dict, str, Path]
DateLike = Union[str, date, datetime]


@dataclass
class BacktestResult:
    """Backtest output: ledger, metrics, or the phase that failed."""
    success: bool
    strategy_name: str = ""
    instrument: str = ""
    portfolio: Optional[Portfolio] = None
    metrics: Optional[BacktestMetrics] = None
    error: str = ""
    failed_phase: Optional[str] = None
    bars_processed: int = 0

    @property
    def trades(self) -> List[Trade]:
        return self.portfolio.trade_log if self.portfolio else []

    @property
    def equity_curve(self) -> List[PortfolioState]:
        return self.portfolio.equity_curve if self.portfolio else []


def parse_date(value: DateLike) -> date:
    """'2024-01-31', date or datetime -> date. Raises ConfigError."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError as e:
        raise ConfigError(f"Invalid date {value!r}; expected YYYY-MM-DD") from e


def day_bounds(start: date, end: date) -> Tuple[datetime, datetime]:
    """[start 00:00:00, end 23:59:59] in UTC."""
    return (
        datetime.combine(start, time(0, 0, 0), tzinfo=timezone.utc),
        datetime.combine(end, time(23, 59, 59), tzinfo=timezone.utc),
    )


class Backtester:
    """
    Runs a Strategy over stored candles of its primary instrument and timeframe.
    Setup failures (config, data, indicators) end the run with a failed result;
    per-bar problems only suppress that bar's signal.
    """

    def __init__(
        self,
        store: CandleStore,
        initial_capital: float = 100000.0,
        commission_per_share: float = 0.01,
        commission_bps: float = 0.0,
        logger: Optional[logging.Logger] = None,
    ):
        self.store = store
        self.initial_capital = initial_capital
        self.commission_per_share = commission_per_share
        self.commission_bps = commission_bps
        self.logger = logger or logging.getLogger("rule_backtester.backtest")

    def run(self, config_or_strategy: StrategySource, start_date: DateLike, end_date: DateLike) -> BacktestResult:
        phase = "config"
        strategy: Optional[Strategy] = None
        try:
            strategy = self._resolve_strategy(config_or_strategy)
            start, end = parse_date(start_date), parse_date(end_date)
            if start > end:
                raise ConfigError(f"Start date {start} is after end date {end}")
            portfolio = Portfolio(self.initial_capital)
            sizer = PositionSizer(self.initial_capital, self.commission_per_share, self.commission_bps)
            instrument, timeframe = strategy.primary_instrument, strategy.primary_timeframe

            phase = "data"
            candles = self._load_candles(instrument, timeframe, start, end)

            phase = "indicators"
            indicators = self._compute_indicators(strategy, candles)
        except BacktestError as e:
            self.logger.error("Backtest failed in %s phase: %s", phase, e)
            return BacktestResult(
                success=False,
                strategy_name=strategy.name if strategy else "",
                instrument=strategy.primary_instrument if strategy else "",
                error=str(e),
                failed_phase=phase,
            )

        strategy.reset()
        max_lookback = max((ind.lookback for _, ind in indicators), default=0)
        self.logger.info(
            "Running '%s' on %s %s: %d bars from %s to %s, first signal bar %d",
            strategy.name, instrument, timeframe, len(candles), start, end, max_lookback,
        )

        previous: Dict[str, float] = {}
        bars = 0
        for i in range(max_lookback, len(candles)):
            candle = candles[i]
            current, complete = self._values_at(indicators, i)
            snapshot = MarketSnapshot(
                timestamp=candle.timestamp,
                candle=candle,
                indicator_values=current,
                previous_values=previous,
                complete=complete,
            )
            try:
                action = strategy.evaluate(snapshot)
            except (ArithmeticError, LookupError, ValueError) as e:
                self.logger.warning("Evaluation failed at %s: %s; no signal this bar", candle.timestamp, e)
                action = SignalAction.NONE

            if action != SignalAction.NONE:
                self._execute(strategy, portfolio, sizer, instrument, candle, action)

            portfolio.record_timestamp_value(candle.timestamp, {instrument: candle.close})
            previous = current
            bars += 1

        metrics = compute_backtest_metrics(
            portfolio.equity_curve,
            portfolio.trade_log,
            self.initial_capital,
            total_executions=portfolio.execution_count,
            periods_per_year=self._periods_per_year(timeframe),
        )
        open_qty = portfolio.position_quantity(instrument)
        if open_qty:
            self.logger.info("Position of %d %s still open at end of data (marked to market)", open_qty, instrument)
        self.logger.info(
            "Backtest '%s' done: %d bars, %d executions, %d trades, final equity %.2f",
            strategy.name, bars, metrics.total_executions, metrics.round_trip_trades, metrics.final_equity,
        )
        return BacktestResult(
            success=True,
            strategy_name=strategy.name,
            instrument=instrument,
            portfolio=portfolio,
            metrics=metrics,
            bars_processed=bars,
        )

    # -------------------------------------------------------------------------
    # Setup phases
    # -------------------------------------------------------------------------

    def _resolve_strategy(self, source: StrategySource) -> Strategy:
        if isinstance(source, Strategy):
            return source
        if isinstance(source, dict):
            return build_strategy(source)
        if isinstance(source, (str, Path)):
            return load_strategy_file(Path(source))
        raise ConfigError(f"Cannot build a strategy from {type(source).__name__}")

    def _load_candles(self, instrument: str, timeframe: str, start: date, end: date) -> List[Candle]:
        lo, hi = day_bounds(start, end)
        candles = self.store.query_candles(instrument, timeframe, lo, hi)
        if not candles:
            raise DataLoadError(f"No candles for {instrument} {timeframe} between {start} and {end}")
        self.logger.info("Loaded %d candles for %s %s", len(candles), instrument, timeframe)
        return candles

    def _compute_indicators(self, strategy: Strategy, candles: List[Candle]) -> List[Tuple[str, Indicator]]:
        indicators = []
        for name in strategy.required_indicator_names:
            indicator = create_indicator(name)
            indicator.calculate(candles)
            self.logger.debug("%s: %d values, lookback %d", name, len(indicator.result), indicator.lookback)
            indicators.append((name, indicator))
        return indicators

    # -------------------------------------------------------------------------
    # Per bar
    # -------------------------------------------------------------------------

    def _values_at(self, indicators: List[Tuple[str, Indicator]], i: int) -> Tuple[Dict[str, float], bool]:
        values: Dict[str, float] = {}
        complete = True
        for name, indicator in indicators:
            j = i - indicator.lookback
            if j < 0 or j >= len(indicator.result):
                self.logger.debug("%s has no value for bar %d", name, i)
                complete = False
                continue
            value = float(indicator.result[j])
            if math.isnan(value):
                complete = False
                continue
            values[name] = value
        return values, complete

    def _execute(
        self,
        strategy: Strategy,
        portfolio: Portfolio,
        sizer: PositionSizer,
        instrument: str,
        candle: Candle,
        action: SignalAction,
    ) -> None:
        price = candle.close
        if action.is_entry:
            sized = sizer.size_entry(strategy.sizing, price)
        else:
            sized = sizer.size_exit(portfolio.position_quantity(instrument))
        if not sized.allowed:
            self.logger.warning("%s at %s skipped: %s", action.value, candle.timestamp, sized.reason)
            strategy.sync_position(portfolio.position_state(instrument))
            return

        commission = sizer.commission(sized.quantity, price)
        try:
            portfolio.record_trade(candle.timestamp, instrument, action, sized.quantity, price, commission)
        except ExecutionError as e:
            self.logger.warning("%s at %s not executed: %s", action.value, candle.timestamp, e)
            strategy.sync_position(portfolio.position_state(instrument))

    def _periods_per_year(self, timeframe: str) -> float:
        try:
            return periods_per_year(timeframe)
        except ValueError:
            self.logger.warning("Unknown timeframe %r; annualizing with 252 periods", timeframe)
            return 252.0
