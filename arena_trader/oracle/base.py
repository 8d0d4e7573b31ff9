"""
Decision oracle contract: the market/account snapshot it receives, the
decision it returns, and the single `decide` capability every oracle
implements (LLM vendors, rule-based, scripted stubs).
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from arena_trader.core.types import OracleAction, Side
from arena_trader.indicators.technical import IndicatorSet, latest

DEFAULT_POSITION_SIZE = 20.0
DEFAULT_LEVERAGE = 3.0
DEFAULT_STOP_LOSS = 2.0
DEFAULT_TAKE_PROFIT = 4.0


@dataclass(frozen=True)
class Decision:
    """Oracle output. Percent fields: position_size of balance, stops from entry."""
    action: OracleAction
    confidence: float
    reasoning: str = ""
    position_size: float = DEFAULT_POSITION_SIZE
    leverage: float = DEFAULT_LEVERAGE
    stop_loss: float = DEFAULT_STOP_LOSS
    take_profit: float = DEFAULT_TAKE_PROFIT

    @classmethod
    def hold(cls, reasoning: str) -> "Decision":
        return cls(action=OracleAction.HOLD, confidence=0.0, reasoning=reasoning)

    @property
    def side(self) -> Optional[Side]:
        if self.action == OracleAction.BUY:
            return Side.LONG
        if self.action == OracleAction.SELL:
            return Side.SHORT
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action.value,
            "confidence": self.confidence,
            "reasoning": self.reasoning,
            "positionSize": self.position_size,
            "leverage": self.leverage,
            "stopLoss": self.stop_loss,
            "takeProfit": self.take_profit,
        }


@dataclass(frozen=True)
class IndicatorSnapshot:
    rsi: Optional[float] = None
    macd: Optional[float] = None
    macd_signal: Optional[float] = None
    macd_histogram: Optional[float] = None
    ema20: Optional[float] = None
    ema50: Optional[float] = None
    ema200: Optional[float] = None
    bollinger_upper: Optional[float] = None
    bollinger_middle: Optional[float] = None
    bollinger_lower: Optional[float] = None
    atr: Optional[float] = None
    open_interest: Optional[float] = None
    funding_rate: Optional[float] = None
    trend: Optional[str] = None

    @classmethod
    def from_indicator_set(cls, ind: IndicatorSet) -> "IndicatorSnapshot":
        return cls(
            rsi=latest(ind.rsi),
            macd=latest(ind.macd.macd),
            macd_signal=latest(ind.macd.signal),
            macd_histogram=latest(ind.macd.histogram),
            ema20=latest(ind.ema20),
            ema50=latest(ind.ema50),
            ema200=latest(ind.ema200),
            bollinger_upper=latest(ind.bollinger.upper),
            bollinger_middle=latest(ind.bollinger.middle),
            bollinger_lower=latest(ind.bollinger.lower),
            atr=latest(ind.atr),
            trend=ind.trend.value,
        )


@dataclass(frozen=True)
class AccountSnapshot:
    balance: float
    positions: int
    total_value: float
    unrealized_pnl: float


@dataclass(frozen=True)
class PerformanceSnapshot:
    total_return: float
    sharpe_ratio: float
    win_rate: float
    total_trades: int
    max_drawdown: Optional[float] = None


@dataclass(frozen=True)
class SnapshotMetadata:
    timestamp: datetime
    wakeup_count: int
    last_action: Optional[str] = None
    consecutive_losses: Optional[int] = None


@dataclass(frozen=True)
class MarketSnapshot:
    """Everything the oracle may see at one bar. Built only from bars <= now."""
    symbol: str
    price: float
    indicators: IndicatorSnapshot
    account: AccountSnapshot
    performance: PerformanceSnapshot
    metadata: SnapshotMetadata

    def to_dict(self) -> Dict[str, Any]:
        """camelCase wire form; unavailable optional values are omitted."""
        ind = self.indicators
        indicators = {
            "rsi": ind.rsi,
            "macd": ind.macd,
            "macdSignal": ind.macd_signal,
            "macdHistogram": ind.macd_histogram,
            "ema20": ind.ema20,
            "ema50": ind.ema50,
            "ema200": ind.ema200,
            "bollingerUpper": ind.bollinger_upper,
            "bollingerMiddle": ind.bollinger_middle,
            "bollingerLower": ind.bollinger_lower,
            "atr": ind.atr,
            "openInterest": ind.open_interest,
            "fundingRate": ind.funding_rate,
            "trend": ind.trend,
        }
        performance = {
            "totalReturn": self.performance.total_return,
            "sharpeRatio": self.performance.sharpe_ratio,
            "winRate": self.performance.win_rate,
            "totalTrades": self.performance.total_trades,
            "maxDrawdown": self.performance.max_drawdown,
        }
        metadata = {
            "timestamp": int(self.metadata.timestamp.timestamp() * 1000),
            "wakeupCount": self.metadata.wakeup_count,
            "lastAction": self.metadata.last_action,
            "consecutiveLosses": self.metadata.consecutive_losses,
        }
        return {
            "symbol": self.symbol,
            "price": self.price,
            "indicators": {k: v for k, v in indicators.items() if v is not None},
            "account": {
                "balance": self.account.balance,
                "positions": self.account.positions,
                "totalValue": self.account.total_value,
                "unrealizedPnL": self.account.unrealized_pnl,
            },
            "performance": {k: v for k, v in performance.items() if v is not None},
            "metadata": {k: v for k, v in metadata.items() if v is not None},
        }


class DecisionOracle(ABC):
    """Maps a market snapshot to a trading decision."""

    name: str = "oracle"

    @abstractmethod
    async def decide(self, snapshot: MarketSnapshot) -> Decision:
        """Return a decision. May raise; the engine converts errors to HOLD."""

