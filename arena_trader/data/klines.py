"""
OHLCV input: DataFrame <-> Bar conversion, CSV loading, series validation.
"""

from __future__ import annotations
import math
from pathlib import Path
from typing import List, Sequence, Union

import pandas as pd

from arena_trader.core.errors import DataValidationError
from arena_trader.core.types import Bar

OHLCV = ["open", "high", "low", "close", "volume"]


def _time_column(df: pd.DataFrame) -> pd.Series:
    if "time" in df.columns:
        col = df["time"]
    elif "open_time" in df.columns:
        col = df["open_time"]
    else:
        raise DataValidationError("kline frame needs a 'time' or 'open_time' column")
    if pd.api.types.is_datetime64_any_dtype(col):
        times = pd.to_datetime(col)
        return times.dt.tz_localize("UTC") if times.dt.tz is None else times
    if pd.api.types.is_numeric_dtype(col):
        # Binance open_time is epoch milliseconds
        return pd.to_datetime(col, unit="ms", utc=True)
    return pd.to_datetime(col, utc=True)


def frame_to_bars(df: pd.DataFrame) -> List[Bar]:
    """Columns: time|open_time, open, high, low, close[, volume]."""
    missing = [c for c in OHLCV[:4] if c not in df.columns]
    if missing:
        raise DataValidationError(f"kline frame missing columns: {missing}")
    times = _time_column(df)
    volume = df["volume"].astype(float) if "volume" in df.columns else pd.Series(0.0, index=df.index)
    return [
        Bar(
            time=t.to_pydatetime(),
            open=float(o),
            high=float(h),
            low=float(lo),
            close=float(c),
            volume=float(v),
        )
        for t, o, h, lo, c, v in zip(
            times, df["open"].astype(float), df["high"].astype(float),
            df["low"].astype(float), df["close"].astype(float), volume,
        )
    ]


def bars_to_frame(bars: Sequence[Bar]) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "time": [b.time for b in bars],
            "open": [b.open for b in bars],
            "high": [b.high for b in bars],
            "low": [b.low for b in bars],
            "close": [b.close for b in bars],
            "volume": [b.volume for b in bars],
        }
    )


def load_csv(path: Union[str, Path]) -> List[Bar]:
    """Read klines from CSV (epoch ms or ISO 8601 times)."""
    path = Path(path)
    if not path.exists():
        raise DataValidationError(f"data file not found: {path}")
    df = pd.read_csv(path)
    return frame_to_bars(df)


def validate_bars(bars: Sequence[Bar], warmup: int = 0) -> None:
    """
    Raise DataValidationError on an empty series, one no longer than the
    warm-up, non-increasing or duplicate timestamps, or bad OHLC values.
    """
    if not bars:
        raise DataValidationError("empty bar series")
    if len(bars) <= warmup:
        raise DataValidationError(f"need more than {warmup} bars for warm-up, got {len(bars)}")
    prev = None
    for i, bar in enumerate(bars):
        values = (bar.open, bar.high, bar.low, bar.close)
        if not all(math.isfinite(v) and v > 0 for v in values):
            raise DataValidationError(f"bar {i} has non-positive or non-finite prices")
        if bar.high < bar.low:
            raise DataValidationError(f"bar {i} has high {bar.high} < low {bar.low}")
        if prev is not None:
            if bar.time == prev.time:
                raise DataValidationError(f"duplicate timestamp at bar {i}: {bar.time}")
            if bar.time < prev.time:
                raise DataValidationError(f"bars not ordered by time at bar {i}")
        prev = bar
