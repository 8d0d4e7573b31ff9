"""
Technical indicators: SMA, EMA, RSI, MACD, Bollinger Bands, ATR, trend,
support/resistance.

Every series function returns a float array of the same length as its input.
Positions inside the warm-up window hold NaN ("not yet available"), never 0.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from arena_trader.core.types import Bar

ArrayLike = Union[Sequence[float], np.ndarray, pd.Series]


class Trend(str, Enum):
    UPTREND = "UPTREND"
    DOWNTREND = "DOWNTREND"
    SIDEWAYS = "SIDEWAYS"


def _as_array(values: ArrayLike) -> np.ndarray:
    return np.asarray(values, dtype=float)


def _check_period(period: int) -> None:
    if period < 1:
        raise ValueError(f"period must be >= 1, got {period}")


def sma(values: ArrayLike, period: int) -> np.ndarray:
    """Simple moving average of the trailing `period` values."""
    _check_period(period)
    return pd.Series(_as_array(values)).rolling(period).mean().to_numpy()


def ema(values: ArrayLike, period: int) -> np.ndarray:
    """
    Exponential moving average seeded with the SMA of the first `period`
    values, then ema[i] = (x[i] - ema[i-1]) * 2 / (period + 1) + ema[i-1].
    """
    _check_period(period)
    arr = _as_array(values)
    out = np.full(arr.shape, np.nan)
    if len(arr) < period:
        return out
    seeded = pd.Series(arr[period - 1:].copy())
    seeded.iloc[0] = arr[:period].mean()
    out[period - 1:] = seeded.ewm(span=period, adjust=False).mean().to_numpy()
    return out


def rsi(values: ArrayLike, period: int = 14) -> np.ndarray:
    """
    RSI over the trailing `period` price changes using plain rolling means of
    gains and losses (not Wilder smoothing). A window without losses is 100.
    First valid index is `period`.
    """
    _check_period(period)
    arr = _as_array(values)
    out = np.full(arr.shape, np.nan)
    if len(arr) <= period:
        return out
    changes = np.diff(arr)
    # exact window sums so a loss-free window is exactly zero
    gains = np.lib.stride_tricks.sliding_window_view(np.clip(changes, 0, None), period).sum(axis=1) / period
    losses = np.lib.stride_tricks.sliding_window_view(np.clip(-changes, 0, None), period).sum(axis=1) / period
    with np.errstate(divide="ignore", invalid="ignore"):
        values_rsi = np.where(losses == 0, 100.0, 100.0 - 100.0 / (1.0 + gains / losses))
    out[period:] = values_rsi
    return out


@dataclass
class MACDResult:
    macd: np.ndarray
    signal: np.ndarray
    histogram: np.ndarray


def macd(
    values: ArrayLike,
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> MACDResult:
    """
    MACD line = EMA(fast) - EMA(slow). The signal line is the EMA of the
    available MACD values only, mapped back onto the original index.
    """
    arr = _as_array(values)
    line = ema(arr, fast_period) - ema(arr, slow_period)
    signal = np.full(arr.shape, np.nan)
    available = ~np.isnan(line)
    if available.any():
        signal[available] = ema(line[available], signal_period)
    return MACDResult(macd=line, signal=signal, histogram=line - signal)


@dataclass
class BollingerBands:
    upper: np.ndarray
    middle: np.ndarray
    lower: np.ndarray


def bollinger_bands(values: ArrayLike, period: int = 20, num_std: float = 2.0) -> BollingerBands:
    """SMA +/- num_std population standard deviations over the same window."""
    _check_period(period)
    series = pd.Series(_as_array(values))
    middle = series.rolling(period).mean()
    std = series.rolling(period).std(ddof=0)
    return BollingerBands(
        upper=(middle + num_std * std).to_numpy(),
        middle=middle.to_numpy(),
        lower=(middle - num_std * std).to_numpy(),
    )


def true_range(high: ArrayLike, low: ArrayLike, close: ArrayLike) -> np.ndarray:
    """True range; the first bar has no previous close and uses high - low."""
    h, l, c = _as_array(high), _as_array(low), _as_array(close)
    tr = h - l
    if len(tr) > 1:
        prev_close = c[:-1]
        tr[1:] = np.maximum.reduce([
            h[1:] - l[1:],
            np.abs(h[1:] - prev_close),
            np.abs(l[1:] - prev_close),
        ])
    return tr


def atr(high: ArrayLike, low: ArrayLike, close: ArrayLike, period: int = 14) -> np.ndarray:
    """Average true range: true range smoothed with the EMA recurrence."""
    return ema(true_range(high, low, close), period)


def identify_trend(short: ArrayLike, medium: ArrayLike, long: ArrayLike) -> Trend:
    """Classify by the last values of three moving averages."""
    last = []
    for series in (short, medium, long):
        arr = _as_array(series)
        if len(arr) == 0 or np.isnan(arr[-1]):
            return Trend.SIDEWAYS
        last.append(float(arr[-1]))
    s, m, l = last
    if s > m > l:
        return Trend.UPTREND
    if s < m < l:
        return Trend.DOWNTREND
    return Trend.SIDEWAYS


@dataclass
class SupportResistance:
    support: List[float] = field(default_factory=list)
    resistance: List[float] = field(default_factory=list)


def support_resistance(high: ArrayLike, low: ArrayLike, lookback: int = 20) -> SupportResistance:
    """
    Local extrema over a symmetric window of `lookback` bars on each side.
    Bars without a full window on both sides are never levels.
    """
    h, l = _as_array(high), _as_array(low)
    levels = SupportResistance()
    for i in range(lookback, len(h) - lookback):
        window = slice(i - lookback, i + lookback + 1)
        if l[i] <= l[window].min():
            levels.support.append(float(l[i]))
        if h[i] >= h[window].max():
            levels.resistance.append(float(h[i]))
    return levels


@dataclass
class IndicatorSet:
    """All indicators for one OHLCV window."""
    closes: np.ndarray
    ema20: np.ndarray
    ema50: np.ndarray
    ema200: np.ndarray
    rsi: np.ndarray
    macd: MACDResult
    bollinger: BollingerBands
    atr: np.ndarray
    trend: Trend
    levels: SupportResistance


def _ohlc_columns(bars: Union[Sequence[Bar], pd.DataFrame]):
    if isinstance(bars, pd.DataFrame):
        return (
            bars["high"].to_numpy(dtype=float),
            bars["low"].to_numpy(dtype=float),
            bars["close"].to_numpy(dtype=float),
        )
    high = np.fromiter((b.high for b in bars), dtype=float, count=len(bars))
    low = np.fromiter((b.low for b in bars), dtype=float, count=len(bars))
    close = np.fromiter((b.close for b in bars), dtype=float, count=len(bars))
    return high, low, close


def calculate_all(bars: Union[Sequence[Bar], pd.DataFrame]) -> IndicatorSet:
    """Batch entry point: every indicator from one OHLCV sequence."""
    high, low, close = _ohlc_columns(bars)
    ema20 = ema(close, 20)
    ema50 = ema(close, 50)
    ema200 = ema(close, 200)
    return IndicatorSet(
        closes=close,
        ema20=ema20,
        ema50=ema50,
        ema200=ema200,
        rsi=rsi(close, 14),
        macd=macd(close),
        bollinger=bollinger_bands(close),
        atr=atr(high, low, close),
        trend=identify_trend(ema20, ema50, ema200),
        levels=support_resistance(high, low),
    )


def latest(series: ArrayLike) -> Optional[float]:
    """Last available (non-NaN) value, or None if nothing is available yet."""
    arr = _as_array(series)
    available = arr[~np.isnan(arr)]
    if len(available) == 0:
        return None
    return float(available[-1])
