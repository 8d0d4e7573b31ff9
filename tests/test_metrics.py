"""Unit tests for analytics.metrics."""

import math
from datetime import timedelta

import pytest

from arena_trader.analytics.metrics import (
    compute_metrics,
    expectancy,
    max_drawdown,
    profit_factor,
    sharpe_ratio,
    sortino_ratio,
    win_rate,
)
from arena_trader.core.types import ExitReason, Side, Trade

from conftest import START


def _trade(pnl, pnl_percent):
    return Trade(
        entry_time=START,
        exit_time=START + timedelta(hours=1),
        side=Side.LONG,
        entry_price=100.0,
        exit_price=101.0,
        quantity=0.2,
        leverage=3.0,
        pnl=pnl,
        pnl_percent=pnl_percent,
        entry_commission=0.0,
        exit_commission=0.0,
        exit_reason=ExitReason.TAKE_PROFIT,
    )


def test_sharpe_ratio_empty():
    assert sharpe_ratio([]) == 0.0


def test_sharpe_ratio_constant():
    assert sharpe_ratio([0.01] * 10) == 0.0  # zero std


def test_sharpe_ratio_population_std():
    # mean 1, population std 1
    assert sharpe_ratio([0.0, 2.0]) == pytest.approx(math.sqrt(252))
    assert sharpe_ratio([0.0, 2.0], periods_per_year=1) == pytest.approx(1.0)


def test_sortino_ratio():
    returns = [10.0, -5.0, 15.0, -3.0]
    # mean 4.25, downside rms sqrt((25 + 9) / 2)
    assert sortino_ratio(returns) == pytest.approx(4.25 / math.sqrt(17) * math.sqrt(252))


def test_sortino_ratio_without_losses():
    assert sortino_ratio([1.0, 2.0, 3.0]) == 0.0
    assert sortino_ratio([]) == 0.0


def test_win_rate_is_percent():
    assert win_rate([1, -1, 1, 1]) == 75.0
    assert win_rate([0, -1]) == 0.0
    assert win_rate([]) == 0.0


def test_profit_factor():
    assert profit_factor([10, -5, 10, -5]) == 2.0
    assert profit_factor([10, 10]) == 0.0
    assert profit_factor([-5, -5]) == 0.0


def test_expectancy():
    assert expectancy([10, -5, 5]) == pytest.approx(10 / 3)
    assert expectancy([]) == 0.0


def test_max_drawdown_currency():
    assert max_drawdown([100.0, 120.0, 100.0, 110.0], 100.0) == pytest.approx(20.0)
    assert max_drawdown([90.0, 95.0], 100.0) == pytest.approx(10.0)
    assert max_drawdown([], 100.0) == 0.0


def test_compute_metrics():
    trades = [_trade(10.0, 50.0), _trade(-5.0, -25.0), _trade(15.0, 75.0), _trade(-3.0, -15.0)]
    m = compute_metrics(trades, 100.0, 117.0)
    assert m.total_trades == 4
    assert m.winning_trades == 2
    assert m.losing_trades == 2
    assert m.total_return == pytest.approx(17.0)
    assert m.total_return_pct == pytest.approx(17.0)
    assert m.expectancy == pytest.approx(4.25)
    assert m.win_rate == 50.0
    assert m.avg_win == pytest.approx(12.5)
    assert m.avg_loss == pytest.approx(4.0)
    assert m.profit_factor == pytest.approx(25.0 / 8.0)
    assert m.sharpe_ratio == pytest.approx(sharpe_ratio([50.0, -25.0, 75.0, -15.0]))


def test_compute_metrics_no_trades():
    m = compute_metrics([], 100.0, 100.0)
    assert m.total_trades == 0
    assert m.sharpe_ratio == 0.0
    assert m.avg_loss == 0.0
