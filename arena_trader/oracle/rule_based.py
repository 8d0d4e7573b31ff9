"""
EMA trend + RSI + Bollinger-middle oracle. Runs offline, no API key needed.
Decides from the snapshot only, so it sees exactly what an LLM would.
"""

from __future__ import annotations
from typing import Optional

from arena_trader.core.types import OracleAction
from arena_trader.oracle.base import Decision, DecisionOracle, MarketSnapshot
from arena_trader.oracle.parsing import parse_decision


class TrendRsiOracle(DecisionOracle):
    """
    Long: EMA20 > EMA50, price > Bollinger middle, rsi_long_min < RSI < rsi_overbought.
    Short: EMA20 < EMA50, price < Bollinger middle, rsi_oversold < RSI < rsi_short_max.
    SL/TP from ATR multiples, expressed as percent of price.
    """

    name = "trend-rsi"

    def __init__(
        self,
        rsi_long_min: float = 50,
        rsi_short_max: float = 50,
        rsi_overbought: float = 70,
        rsi_oversold: float = 30,
        atr_stop_mult: float = 1.5,
        atr_tp_mult: float = 3.0,
        confidence: float = 75,
        position_size: float = 20,
        leverage: float = 3,
    ):
        self.rsi_long_min = rsi_long_min
        self.rsi_short_max = rsi_short_max
        self.rsi_overbought = rsi_overbought
        self.rsi_oversold = rsi_oversold
        self.atr_stop_mult = atr_stop_mult
        self.atr_tp_mult = atr_tp_mult
        self.confidence = confidence
        self.position_size = position_size
        self.leverage = leverage

    async def decide(self, snapshot: MarketSnapshot) -> Decision:
        return self.evaluate(snapshot)

    def evaluate(self, snapshot: MarketSnapshot) -> Decision:
        ind = snapshot.indicators
        price = snapshot.price
        if None in (ind.ema20, ind.ema50, ind.rsi, ind.bollinger_middle) or price <= 0:
            return Decision(OracleAction.HOLD, 0.0, "indicators not ready")

        ema_bull = ind.ema20 > ind.ema50
        ema_bear = ind.ema20 < ind.ema50
        long_ok = ema_bull and price > ind.bollinger_middle and self.rsi_long_min < ind.rsi < self.rsi_overbought
        short_ok = ema_bear and price < ind.bollinger_middle and self.rsi_oversold < ind.rsi < self.rsi_short_max
        if not (long_ok or short_ok):
            return Decision(OracleAction.HOLD, 50.0, f"no setup (rsi={ind.rsi:.1f}, trend={ind.trend})")

        action = OracleAction.BUY if long_ok else OracleAction.SELL
        stop_pct = self._atr_percent(ind.atr, price, self.atr_stop_mult)
        tp_pct = self._atr_percent(ind.atr, price, self.atr_tp_mult)
        direction = "above" if long_ok else "below"
        return parse_decision({
            "action": action.value,
            "confidence": self.confidence,
            "reasoning": f"EMA20 {direction} EMA50, price {direction} BB middle, RSI {ind.rsi:.1f}",
            "positionSize": self.position_size,
            "leverage": self.leverage,
            # None falls back to the default percentages
            "stopLoss": stop_pct,
            "takeProfit": tp_pct,
        })

    @staticmethod
    def _atr_percent(atr: Optional[float], price: float, mult: float) -> Optional[float]:
        if atr is None or atr <= 0:
            return None
        return atr * mult / price * 100
