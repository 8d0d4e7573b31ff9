"""Equity and drawdown curves, one point per processed bar plus a seed point."""

from __future__ import annotations
from datetime import datetime
from typing import List

from arena_trader.core.types import DrawdownPoint, EquityPoint


class EquityTracker:
    """
    Running peak (seeded with initial capital), drawdown in currency and
    percent of peak. Points are appended in bar order and never reordered.
    """

    def __init__(self, initial_capital: float):
        self.initial_capital = initial_capital
        self.peak = initial_capital
        self.max_drawdown = 0.0
        self.equity_curve: List[EquityPoint] = []
        self.drawdown_curve: List[DrawdownPoint] = []

    def record(self, time: datetime, equity: float) -> None:
        if equity > self.peak:
            self.peak = equity
        drawdown = self.peak - equity
        if drawdown > self.max_drawdown:
            self.max_drawdown = drawdown
        pct = drawdown / self.peak * 100.0 if self.peak > 0 else 0.0
        self.equity_curve.append(EquityPoint(time=time, equity=equity))
        self.drawdown_curve.append(DrawdownPoint(time=time, drawdown_percent=pct))

    @property
    def current_drawdown_percent(self) -> float:
        return self.drawdown_curve[-1].drawdown_percent if self.drawdown_curve else 0.0

    @property
    def max_drawdown_percent(self) -> float:
        if not self.drawdown_curve:
            return 0.0
        return max(p.drawdown_percent for p in self.drawdown_curve)
