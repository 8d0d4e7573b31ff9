"""Shared bar and snapshot factories."""

from datetime import datetime, timedelta, timezone

import pytest

from arena_trader.core.types import Bar
from arena_trader.oracle.base import (
    AccountSnapshot,
    IndicatorSnapshot,
    MarketSnapshot,
    PerformanceSnapshot,
    SnapshotMetadata,
)

START = datetime(2024, 1, 1, tzinfo=timezone.utc)


def build_bars(closes, spread=0.5, start=START, step=timedelta(hours=1)):
    return [
        Bar(time=start + i * step, open=c, high=c + spread, low=c - spread, close=c, volume=1000.0)
        for i, c in enumerate(closes)
    ]


def build_snapshot(price=100.0, wakeup_count=200, **indicators):
    return MarketSnapshot(
        symbol="BTCUSDT",
        price=price,
        indicators=IndicatorSnapshot(**indicators),
        account=AccountSnapshot(balance=100.0, positions=0, total_value=100.0, unrealized_pnl=0.0),
        performance=PerformanceSnapshot(total_return=0.0, sharpe_ratio=0.0, win_rate=0.0, total_trades=0),
        metadata=SnapshotMetadata(timestamp=START, wakeup_count=wakeup_count),
    )


@pytest.fixture
def make_bars():
    return build_bars


@pytest.fixture
def rising_bars():
    """250 bars with strictly increasing closes 100, 101, ..."""
    return build_bars([100.0 + i for i in range(250)])


@pytest.fixture
def make_snapshot():
    return build_snapshot
