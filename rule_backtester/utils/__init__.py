"""Utils: timeframes."""

from rule_backtester.utils.timeframes import periods_per_year, timeframe_minutes, to_binance_interval

__all__ = ["periods_per_year", "timeframe_minutes", "to_binance_interval"]
