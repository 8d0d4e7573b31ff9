"""
Performance metrics: Sharpe, Sortino, max drawdown, win rate, profit factor, expectancy.
Ratios use per-trade percent returns annualised with sqrt(252), a documented
simplification (trades are not daily periods).
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

from arena_trader.core.types import Trade

TRADING_DAYS = 252.0


@dataclass
class PerformanceMetrics:
    """Aggregate performance metrics over closed trades."""
    total_return: float
    total_return_pct: float
    sharpe_ratio: float
    sortino_ratio: float
    win_rate: float
    profit_factor: float
    expectancy: float
    total_trades: int
    winning_trades: int
    losing_trades: int
    avg_win: float
    avg_loss: float


def sharpe_ratio(returns: Sequence[float], periods_per_year: float = TRADING_DAYS) -> float:
    """Mean / population std, times sqrt(periods_per_year). 0 when std is 0."""
    if len(returns) == 0:
        return 0.0
    arr = np.asarray(returns, dtype=float)
    std = arr.std()
    if std <= 1e-12:
        return 0.0
    return float(arr.mean() / std * np.sqrt(periods_per_year))


def sortino_ratio(returns: Sequence[float], periods_per_year: float = TRADING_DAYS) -> float:
    """Mean / root-mean-square of the negative returns. 0 with no losing returns."""
    if len(returns) == 0:
        return 0.0
    arr = np.asarray(returns, dtype=float)
    downside = arr[arr < 0]
    if len(downside) == 0:
        return 0.0
    downside_dev = np.sqrt(np.mean(downside ** 2))
    if downside_dev <= 1e-12:
        return 0.0
    return float(arr.mean() / downside_dev * np.sqrt(periods_per_year))


def max_drawdown(equity: Sequence[float], initial: float) -> float:
    """Largest peak-to-trough fall in currency units, peak seeded with `initial`."""
    if len(equity) == 0:
        return 0.0
    arr = np.asarray(equity, dtype=float)
    peak = np.maximum.accumulate(np.maximum(arr, initial))
    return float(np.max(peak - arr))


def win_rate(pnls: Sequence[float]) -> float:
    """Percent of trades with positive PnL."""
    if len(pnls) == 0:
        return 0.0
    return sum(1 for p in pnls if p > 0) / len(pnls) * 100.0


def profit_factor(pnls: Sequence[float]) -> float:
    """Gross profit / gross loss. Returns 0 if no losses."""
    wins = sum(p for p in pnls if p > 0)
    losses = sum(-p for p in pnls if p < 0)
    if losses <= 0:
        return 0.0
    return wins / losses


def expectancy(pnls: Sequence[float]) -> float:
    """Average PnL per trade."""
    if len(pnls) == 0:
        return 0.0
    return sum(pnls) / len(pnls)


def compute_metrics(
    trades: List[Trade],
    initial_capital: float,
    final_capital: float,
    periods_per_year: float = TRADING_DAYS,
) -> PerformanceMetrics:
    """Compute full metrics from closed trades and the capital at both ends."""
    total_return = final_capital - initial_capital
    total_return_pct = total_return / initial_capital * 100.0 if initial_capital else 0.0
    pnls = [t.pnl for t in trades]
    returns = [t.pnl_percent for t in trades]
    wins = [p for p in pnls if p > 0]
    losses = [p for p in pnls if p < 0]
    return PerformanceMetrics(
        total_return=total_return,
        total_return_pct=total_return_pct,
        sharpe_ratio=sharpe_ratio(returns, periods_per_year),
        sortino_ratio=sortino_ratio(returns, periods_per_year),
        win_rate=win_rate(pnls),
        profit_factor=profit_factor(pnls),
        expectancy=expectancy(pnls),
        total_trades=len(trades),
        winning_trades=len(wins),
        losing_trades=len(losses),
        avg_win=sum(wins) / len(wins) if wins else 0.0,
        avg_loss=abs(sum(losses) / len(losses)) if losses else 0.0,
    )
