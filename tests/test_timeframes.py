"""Unit tests for utils.timeframes."""

import pytest
from arena_trader.utils.timeframes import bars_for_days, timeframe_minutes


def test_timeframe_minutes():
    assert timeframe_minutes("5m") == 5
    assert timeframe_minutes("1h") == 60
    assert timeframe_minutes("1d") == 1440


def test_timeframe_invalid():
    with pytest.raises(ValueError):
        timeframe_minutes("1x")


def test_bars_for_days():
    assert bars_for_days(30, "1h") == 720
    assert bars_for_days(1, "15m") == 96
    # partial bar rounds up
    assert bars_for_days(1, "7m") == 206


def test_timeframe_weeks_and_whitespace():
    assert timeframe_minutes(" 4H ") == 240
    assert timeframe_minutes("1w") == 10080


@pytest.mark.parametrize("tf", ["0m", "m", "15", "1.5h"])
def test_timeframe_malformed(tf):
    with pytest.raises(ValueError):
        timeframe_minutes(tf)
