"""Order sizing and commission."""

from rule_backtester.risk.sizing import PositionSizer, SizingResult

__all__ = ["PositionSizer", "SizingResult"]
