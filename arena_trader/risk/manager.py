"""
Risk manager: position sizing from the oracle's margin percentage, leverage
and size bounds, minimum notional on the lot-rounded quantity, loss streaks.
Quantity = capital x size% / entry price (unleveraged base size).
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Optional

from arena_trader.utils.exchange_filters import parse_symbol_filters, round_quantity

logger = logging.getLogger("arena_trader.risk")


@dataclass
class RiskResult:
    """Result of risk check: allowed or rejected + reason."""
    allowed: bool
    quantity: float = 0.0
    reason: str = ""


class RiskManager:
    """
    Enforces: positive capital, leverage and size bounds, min notional
    (after lot rounding). Tracks consecutive losing trades for the oracle.
    """

    def __init__(
        self,
        min_notional: float = 5.0,
        max_leverage: float = 30.0,
        max_position_pct: float = 100.0,
        min_qty: float = 0.0,
        lot_step: float = 0.0,
    ):
        self.min_notional = min_notional
        self.max_leverage = max_leverage
        self.max_position_pct = max_position_pct
        self._min_qty = min_qty
        self._lot_step = lot_step
        self._consecutive_losses: int = 0

    @property
    def consecutive_losses(self) -> int:
        return self._consecutive_losses

    def record_trade_pnl(self, pnl: float) -> None:
        """Record closed trade PnL for the consecutive loss count."""
        if pnl < 0:
            self._consecutive_losses += 1
        else:
            self._consecutive_losses = 0

    def reset(self) -> None:
        self._consecutive_losses = 0

    def size_position(self, capital: float, entry_price: float, position_size_pct: float) -> float:
        """Margin / entry, rounded down to the lot step when filters are set."""
        if entry_price <= 0:
            return 0.0
        margin = capital * position_size_pct / 100.0
        return round_quantity(margin / entry_price, self._min_qty, self._lot_step)

    def validate_open(
        self,
        capital: float,
        entry_price: float,
        position_size_pct: float,
        leverage: float,
    ) -> RiskResult:
        """
        Validate an open request and compute the allowed quantity.
        Notional = quantity x leverage x entry price, checked on the rounded quantity.
        """
        if capital <= 0:
            return RiskResult(allowed=False, reason=f"no capital ({capital:.2f})")
        if entry_price <= 0:
            return RiskResult(allowed=False, reason="non-positive entry price")
        if not 1 <= leverage <= self.max_leverage:
            return RiskResult(allowed=False, reason=f"leverage {leverage:g} outside 1-{self.max_leverage:g}")
        if not 0 < position_size_pct <= self.max_position_pct:
            return RiskResult(
                allowed=False,
                reason=f"position size {position_size_pct:g}% outside 0-{self.max_position_pct:g}%",
            )

        qty = self.size_position(capital, entry_price, position_size_pct)
        if qty <= 0:
            return RiskResult(allowed=False, reason="qty rounded to 0")

        notional = qty * leverage * entry_price
        if notional < self.min_notional:
            return RiskResult(allowed=False, reason=f"notional {notional:.2f} < min {self.min_notional}")

        return RiskResult(allowed=True, quantity=qty, reason="")

    def update_symbol_info(self, symbol_info: Optional[dict]) -> None:
        """Update lot filters from a Binance exchangeInfo symbol entry."""
        self._min_qty, self._lot_step = parse_symbol_filters(symbol_info)
