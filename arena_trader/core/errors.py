"""
Error taxonomy: classification of oracle, exchange, risk and data failures,
plus a bounded per-run error log.
"""

from __future__ import annotations
import asyncio
import json
import logging
from collections import Counter, deque
from enum import Enum
from typing import Any, Deque, Dict, List, Optional

import requests
from binance.exceptions import BinanceAPIException

logger = logging.getLogger("arena_trader.errors")


class ErrorType(str, Enum):
    ORACLE_TIMEOUT = "ORACLE_TIMEOUT"
    ORACLE_RATE_LIMIT = "ORACLE_RATE_LIMIT"
    ORACLE_NETWORK = "ORACLE_NETWORK"
    ORACLE_API_ERROR = "ORACLE_API_ERROR"
    ORACLE_INVALID_RESPONSE = "ORACLE_INVALID_RESPONSE"
    RISK_REJECTED = "RISK_REJECTED"
    DATA_INVALID = "DATA_INVALID"
    EXCHANGE_RATE_LIMIT = "EXCHANGE_RATE_LIMIT"
    EXCHANGE_API_ERROR = "EXCHANGE_API_ERROR"
    UNKNOWN = "UNKNOWN"


class TradingError(Exception):
    """Base error with a type, retry hint and optional vendor/exchange code."""

    def __init__(
        self,
        error_type: ErrorType,
        message: str,
        retryable: bool = False,
        code: Optional[Any] = None,
    ):
        super().__init__(message)
        self.error_type = error_type
        self.retryable = retryable
        self.code = code

    def __str__(self) -> str:
        return f"[{self.error_type.value}] {self.args[0] if self.args else ''}"


class OracleError(TradingError):
    """Decision oracle failure. Always absorbed by the backtest engine."""


class DataValidationError(TradingError, ValueError):
    """Invalid input series. Fatal: raised before any bar is processed."""

    def __init__(self, message: str):
        super().__init__(ErrorType.DATA_INVALID, message, retryable=False)


def classify_error(exc: BaseException) -> TradingError:
    """Map an arbitrary exception onto the error taxonomy."""
    if isinstance(exc, TradingError):
        return exc
    if isinstance(exc, asyncio.TimeoutError):
        return OracleError(ErrorType.ORACLE_TIMEOUT, "oracle call timed out", retryable=True)
    if isinstance(exc, BinanceAPIException):
        if exc.status_code in (429, 418):
            return TradingError(ErrorType.EXCHANGE_RATE_LIMIT, exc.message, retryable=True, code=exc.code)
        return TradingError(ErrorType.EXCHANGE_API_ERROR, exc.message, retryable=False, code=exc.code)
    if isinstance(exc, requests.Timeout):
        return OracleError(ErrorType.ORACLE_TIMEOUT, str(exc) or "request timed out", retryable=True)
    if isinstance(exc, requests.HTTPError):
        status = exc.response.status_code if exc.response is not None else None
        if status == 429:
            return OracleError(ErrorType.ORACLE_RATE_LIMIT, "oracle API rate limit exceeded", retryable=True, code=status)
        retryable = status is not None and status >= 500
        return OracleError(ErrorType.ORACLE_API_ERROR, str(exc), retryable=retryable, code=status)
    if isinstance(exc, requests.ConnectionError):
        return OracleError(ErrorType.ORACLE_NETWORK, str(exc), retryable=True)
    if isinstance(exc, (json.JSONDecodeError, KeyError, IndexError, TypeError)):
        return OracleError(ErrorType.ORACLE_INVALID_RESPONSE, f"malformed response: {exc}")
    return TradingError(ErrorType.UNKNOWN, str(exc) or exc.__class__.__name__)


class ErrorLog:
    """
    Bounded in-memory error log. Created once per run and passed to the
    components that report into it; never shared across runs implicitly.
    """

    def __init__(self, max_errors: int = 1000):
        self.max_errors = max_errors
        self._errors: Deque[TradingError] = deque(maxlen=max_errors)

    def record(self, error: BaseException, context: str = "") -> TradingError:
        classified = classify_error(error)
        self._errors.append(classified)
        logger.warning(
            "%s%s (retryable=%s, code=%s)",
            f"{context}: " if context else "",
            classified,
            classified.retryable,
            classified.code,
        )
        return classified

    def recent(self, count: int = 50) -> List[TradingError]:
        return list(self._errors)[-count:]

    def stats(self) -> Dict[str, int]:
        return dict(Counter(e.error_type.value for e in self._errors))

    def clear(self) -> None:
        self._errors.clear()

    def __len__(self) -> int:
        return len(self._errors)
