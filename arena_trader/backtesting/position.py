"""
Single-position state machine: FLAT -> OPEN -> FLAT, no partial exits.
Stop-loss is checked before take-profit, so a bar that breaches both closes
at the stop.
"""

from __future__ import annotations
from enum import Enum
from typing import Optional, Tuple

from arena_trader.core.types import Bar, ExitReason, Position, Side


class PositionState(str, Enum):
    FLAT = "FLAT"
    OPEN = "OPEN"


class InvalidTransition(RuntimeError):
    """Opening while OPEN or closing while FLAT."""


def check_exit(position: Position, bar: Bar) -> Optional[Tuple[ExitReason, float]]:
    """Return (reason, trigger level) if the bar's range hits stop or target."""
    if position.side == Side.LONG:
        if bar.low <= position.stop_loss_price:
            return ExitReason.STOP_LOSS, position.stop_loss_price
        if bar.high >= position.take_profit_price:
            return ExitReason.TAKE_PROFIT, position.take_profit_price
    else:
        if bar.high >= position.stop_loss_price:
            return ExitReason.STOP_LOSS, position.stop_loss_price
        if bar.low <= position.take_profit_price:
            return ExitReason.TAKE_PROFIT, position.take_profit_price
    return None


class PositionStateMachine:
    """Holds at most one live position."""

    def __init__(self) -> None:
        self._position: Optional[Position] = None

    @property
    def state(self) -> PositionState:
        return PositionState.FLAT if self._position is None else PositionState.OPEN

    @property
    def position(self) -> Optional[Position]:
        return self._position

    @property
    def is_open(self) -> bool:
        return self._position is not None

    def open(self, position: Position) -> None:
        if self._position is not None:
            raise InvalidTransition(f"cannot open {position.side.value}: position already open")
        self._position = position

    def check_exit(self, bar: Bar) -> Optional[Tuple[ExitReason, float]]:
        if self._position is None:
            return None
        return check_exit(self._position, bar)

    def close(self) -> Position:
        """Detach and return the open position."""
        if self._position is None:
            raise InvalidTransition("cannot close: no open position")
        position, self._position = self._position, None
        return position
