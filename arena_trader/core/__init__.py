"""Core: config, types, errors, logging."""

from arena_trader.core.config import load_config, Config, BacktestConfig
from arena_trader.core.types import (
    Bar,
    DecisionRecord,
    DrawdownPoint,
    EquityPoint,
    ExitReason,
    OracleAction,
    Position,
    Side,
    Trade,
)
from arena_trader.core.errors import (
    DataValidationError,
    ErrorLog,
    ErrorType,
    OracleError,
    TradingError,
    classify_error,
)
from arena_trader.core.logger import setup_logging

__all__ = [
    "load_config",
    "Config",
    "BacktestConfig",
    "Bar",
    "DecisionRecord",
    "DrawdownPoint",
    "EquityPoint",
    "ExitReason",
    "OracleAction",
    "Position",
    "Side",
    "Trade",
    "DataValidationError",
    "ErrorLog",
    "ErrorType",
    "OracleError",
    "TradingError",
    "classify_error",
    "setup_logging",
]
