"""Prompt text sent to LLM oracles."""

from __future__ import annotations
from datetime import timezone
from typing import List, Optional

from arena_trader.oracle.base import MarketSnapshot

SYSTEM_PROMPT = """You are a professional cryptocurrency futures trading AI. Your goal is
consistent, risk-adjusted profit from high-quality trading decisions.

## Core principles
1. Quality first: only trade with high confidence (>70%)
2. Risk control: always set a stop-loss and a take-profit
3. Trend following: trade with the trend, not against it
4. Money management: keep position size and leverage reasonable

## Exchange constraints
- Minimum order notional: ${min_notional:.0f} USDT
- Notional = balance x positionSize% x leverage

## Output format
Reply with a single JSON object:
{{
  "action": "BUY|SELL|HOLD|CLOSE",
  "confidence": 0-100,
  "reasoning": "short explanation",
  "positionSize": 1-100,
  "leverage": 1-30,
  "stopLoss": 1-10,
  "takeProfit": 2-20
}}"""


def _fmt(value: Optional[float], prefix: str = "", digits: int = 2) -> str:
    return "N/A" if value is None else f"{prefix}{value:.{digits}f}"


class PromptBuilder:
    """Renders the system and user prompts. Subclass to change wording per model."""

    def __init__(self, min_notional: float = 5.0):
        self.min_notional = min_notional

    def system_prompt(self) -> str:
        return SYSTEM_PROMPT.format(min_notional=self.min_notional)

    def user_prompt(self, snapshot: MarketSnapshot) -> str:
        ind = snapshot.indicators
        acc = snapshot.account
        perf = snapshot.performance
        meta = snapshot.metadata

        rsi_note = ""
        if ind.rsi is not None:
            if ind.rsi < 30:
                rsi_note = " [oversold]"
            elif ind.rsi > 70:
                rsi_note = " [overbought]"

        lines: List[str] = [
            f"## Market data ({snapshot.symbol})",
            f"Price: ${snapshot.price:.2f}",
            f"Wakeup count: {meta.wakeup_count}",
            "",
            "## Technical indicators",
            f"RSI(14): {_fmt(ind.rsi)}{rsi_note}",
            f"MACD: {_fmt(ind.macd)} / signal {_fmt(ind.macd_signal)} / histogram {_fmt(ind.macd_histogram)}",
            f"EMA20: {_fmt(ind.ema20, '$')}  EMA50: {_fmt(ind.ema50, '$')}  EMA200: {_fmt(ind.ema200, '$')}",
            f"Bollinger: upper {_fmt(ind.bollinger_upper, '$')} / middle {_fmt(ind.bollinger_middle, '$')}"
            f" / lower {_fmt(ind.bollinger_lower, '$')}",
            f"ATR: {_fmt(ind.atr)}",
        ]
        if ind.trend:
            lines.append(f"Trend: {ind.trend}")
        if ind.open_interest is not None:
            lines.append(f"Open interest: {ind.open_interest}")
        if ind.funding_rate is not None:
            lines.append(f"Funding rate: {ind.funding_rate * 100:.4f}%")

        lines += [
            "",
            "## Account",
            f"Balance: ${acc.balance:.2f}",
            f"Open positions: {acc.positions}",
            f"Total value: ${acc.total_value:.2f}",
            f"Unrealized PnL: ${acc.unrealized_pnl:.2f}",
            "",
            "## Performance",
            f"Total return: {perf.total_return:.2f}%",
            f"Sharpe ratio: {perf.sharpe_ratio:.2f}",
            f"Win rate: {perf.win_rate:.2f}%",
            f"Total trades: {perf.total_trades}",
        ]
        if perf.max_drawdown is not None:
            lines.append(f"Max drawdown: {perf.max_drawdown:.2f}%")

        lines += ["", "## Context"]
        if meta.last_action:
            lines.append(f"Last action: {meta.last_action}")
        if meta.consecutive_losses:
            lines.append(f"Consecutive losses: {meta.consecutive_losses}")
        lines.append(f"Timestamp: {meta.timestamp.astimezone(timezone.utc).isoformat()}")
        lines += ["", "Make a trading decision based on the data above."]
        return "\n".join(lines)
