"""
Fill simulation: slippage on market fills, exact fills at stop/target
levels, commission on entry and exit notional, leveraged P&L.
"""

from __future__ import annotations
from datetime import datetime
from typing import Tuple

from arena_trader.core.types import ExitReason, Position, Side, Trade


class FillSimulator:
    """
    commission and slippage are fractions (0.0004 = 4 bps).

    P&L = side-aware fractional move x entry notional x leverage - exit
    commission, where entry notional already includes leverage.
    """

    def __init__(self, commission: float = 0.0004, slippage: float = 0.0005):
        self.commission = commission
        self.slippage = slippage

    def entry_price(self, side: Side, close: float) -> float:
        """Long pays more, short receives less."""
        if side == Side.LONG:
            return close * (1 + self.slippage)
        return close * (1 - self.slippage)

    def market_exit_price(self, side: Side, close: float) -> float:
        """Long receives less, short pays more."""
        if side == Side.LONG:
            return close * (1 - self.slippage)
        return close * (1 + self.slippage)

    @staticmethod
    def protective_prices(side: Side, entry: float, stop_loss_pct: float, take_profit_pct: float) -> Tuple[float, float]:
        """(stop_loss_price, take_profit_price) from percent distances."""
        sl = stop_loss_pct / 100.0
        tp = take_profit_pct / 100.0
        if side == Side.LONG:
            return entry * (1 - sl), entry * (1 + tp)
        return entry * (1 + sl), entry * (1 - tp)

    def open_position(
        self,
        side: Side,
        close: float,
        time: datetime,
        quantity: float,
        leverage: float,
        stop_loss_pct: float,
        take_profit_pct: float,
    ) -> Position:
        entry = self.entry_price(side, close)
        stop, target = self.protective_prices(side, entry, stop_loss_pct, take_profit_pct)
        position = Position(
            side=side,
            entry_price=entry,
            entry_time=time,
            quantity=quantity,
            leverage=leverage,
            stop_loss_price=stop,
            take_profit_price=target,
        )
        position.entry_commission = position.notional * self.commission
        return position

    @staticmethod
    def price_move(side: Side, entry: float, price: float) -> float:
        move = (price - entry) / entry
        return move if side == Side.LONG else -move

    def unrealized_pnl(self, position: Position, price: float) -> float:
        """Mark-to-market P&L at `price`, without exit commission."""
        return self.price_move(position.side, position.entry_price, price) * position.notional * position.leverage

    def close_position(
        self,
        position: Position,
        time: datetime,
        reason: ExitReason,
        close: float,
        level: float = 0.0,
    ) -> Trade:
        """
        Fill at `level` for STOP_LOSS / TAKE_PROFIT, at slipped `close` for
        FORCED_CLOSE. Returns the realized Trade.
        """
        if reason == ExitReason.FORCED_CLOSE:
            exit_price = self.market_exit_price(position.side, close)
        else:
            exit_price = level
        exit_commission = position.notional_at(exit_price) * self.commission
        pnl = self.unrealized_pnl(position, exit_price) - exit_commission
        margin = position.margin
        return Trade(
            entry_time=position.entry_time,
            exit_time=time,
            side=position.side,
            entry_price=position.entry_price,
            exit_price=exit_price,
            quantity=position.quantity,
            leverage=position.leverage,
            pnl=pnl,
            pnl_percent=pnl / margin * 100 if margin > 0 else 0.0,
            entry_commission=position.entry_commission,
            exit_commission=exit_commission,
            exit_reason=reason,
        )
