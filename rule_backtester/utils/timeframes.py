"""Timeframe string conversions. Accepts Binance style ('5m', '1h', '1d', '1w') and
word style ('minute', '5minute', 'day', 'week')."""

import re

_WORD_RE = re.compile(r"^(\d*)(minute|hour|day|week)s?$")
_WORD_MINUTES = {"minute": 1, "hour": 60, "day": 60 * 24, "week": 60 * 24 * 7}


def timeframe_minutes(tf: str) -> int:
    """Convert a timeframe (e.g. '5m', '1h', '1d', '30minute', 'day') to minutes."""
    tf = tf.strip().lower()
    m = _WORD_RE.match(tf)
    if m:
        count = int(m.group(1)) if m.group(1) else 1
        return count * _WORD_MINUTES[m.group(2)]
    try:
        if tf.endswith("m"):
            return int(tf[:-1])
        if tf.endswith("h"):
            return int(tf[:-1]) * 60
        if tf.endswith("d"):
            return int(tf[:-1]) * 60 * 24
        if tf.endswith("w"):
            return int(tf[:-1]) * 60 * 24 * 7
    except ValueError:
        pass
    raise ValueError(f"Unsupported timeframe: {tf}")


def to_binance_interval(tf: str) -> str:
    """'30minute' -> '30m', 'day' -> '1d'."""
    minutes = timeframe_minutes(tf)
    if minutes % (60 * 24 * 7) == 0:
        return f"{minutes // (60 * 24 * 7)}w"
    if minutes % (60 * 24) == 0:
        return f"{minutes // (60 * 24)}d"
    if minutes % 60 == 0:
        return f"{minutes // 60}h"
    return f"{minutes}m"


def periods_per_year(tf: str) -> float:
    """Bars per year for annualizing; daily bars use 252 trading days."""
    return 252.0 * (60 * 24) / timeframe_minutes(tf)
