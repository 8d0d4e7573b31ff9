"""Indicator library: pure functions over ordered OHLCV sequences."""

from arena_trader.indicators.technical import (
    IndicatorSet,
    Trend,
    atr,
    bollinger_bands,
    calculate_all,
    ema,
    identify_trend,
    latest,
    macd,
    rsi,
    sma,
    support_resistance,
    true_range,
)

__all__ = [
    "IndicatorSet",
    "Trend",
    "atr",
    "bollinger_bands",
    "calculate_all",
    "ema",
    "identify_trend",
    "latest",
    "macd",
    "rsi",
    "sma",
    "support_resistance",
    "true_range",
]
