"""
Core data types for bars, positions, trades, and curve points.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Side(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"


class OracleAction(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"
    CLOSE = "CLOSE"


class ExitReason(str, Enum):
    STOP_LOSS = "STOP_LOSS"
    TAKE_PROFIT = "TAKE_PROFIT"
    FORCED_CLOSE = "FORCED_CLOSE"


@dataclass(frozen=True)
class Bar:
    """OHLCV candle. `time` is the bar open time."""
    time: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float


@dataclass
class Position:
    """Open position state. `quantity` is margin / entry price (before leverage)."""
    side: Side
    entry_price: float
    entry_time: datetime
    quantity: float
    leverage: float
    stop_loss_price: float
    take_profit_price: float
    entry_commission: float = 0.0

    @property
    def margin(self) -> float:
        return self.quantity * self.entry_price

    @property
    def notional(self) -> float:
        return self.quantity * self.leverage * self.entry_price

    def notional_at(self, price: float) -> float:
        return self.quantity * self.leverage * price


@dataclass(frozen=True)
class Trade:
    """Closed trade for analytics."""
    entry_time: datetime
    exit_time: datetime
    side: Side
    entry_price: float
    exit_price: float
    quantity: float
    leverage: float
    pnl: float
    pnl_percent: float
    entry_commission: float
    exit_commission: float
    exit_reason: ExitReason

    @property
    def commission(self) -> float:
        return self.entry_commission + self.exit_commission

    @property
    def is_win(self) -> bool:
        return self.pnl > 0


@dataclass(frozen=True)
class EquityPoint:
    time: datetime
    equity: float


@dataclass(frozen=True)
class DrawdownPoint:
    time: datetime
    drawdown_percent: float


@dataclass(frozen=True)
class DecisionRecord:
    """Audit trail entry for one oracle consultation."""
    time: datetime
    bar_index: int
    action: OracleAction
    confidence: float
    reasoning: str
    outcome: str
