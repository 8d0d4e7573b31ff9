"""Binance kline intervals ('15m', '4h', '1d', '1w') and bar counts per period."""

import math
import re

_INTERVAL = re.compile(r"^(\d+)([mhdw])$")
_UNIT_MINUTES = {"m": 1, "h": 60, "d": 60 * 24, "w": 60 * 24 * 7}


def timeframe_minutes(tf: str) -> int:
    """Minutes per bar. Raises ValueError for unknown units or a zero count."""
    match = _INTERVAL.match(tf.strip().lower())
    if not match or int(match.group(1)) == 0:
        raise ValueError(f"Unsupported timeframe: {tf}")
    return int(match.group(1)) * _UNIT_MINUTES[match.group(2)]


def bars_for_days(days: int, tf: str) -> int:
    """Bars of `tf` needed to cover `days` days, a partial bar counting as one."""
    return math.ceil(days * 24 * 60 / timeframe_minutes(tf))
