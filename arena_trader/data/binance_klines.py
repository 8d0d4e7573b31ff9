"""
Historical USDT-M futures klines from Binance, paginated and rate-limit aware.
"""

from __future__ import annotations
import logging
import time
from typing import Callable, List, Optional

import pandas as pd
from binance.client import Client
from binance.exceptions import BinanceAPIException

from arena_trader.core.types import Bar
from arena_trader.data.klines import frame_to_bars
from arena_trader.utils.backoff import ExponentialBackoff

logger = logging.getLogger("arena_trader.data.binance")

# futures_klines returns at most this many rows per request
MAX_PAGE = 1500

KLINE_COLUMNS = [
    "open_time", "open", "high", "low", "close", "volume",
    "close_time", "quote_av", "num_trades", "tb_base_av", "tb_quote_av", "ignore",
]


def _is_rate_limit(e: BaseException) -> bool:
    return isinstance(e, BinanceAPIException) and e.status_code in (429, 418)


class BinanceKlineClient:
    """Read-only kline fetcher. Keys are optional for public market data."""

    def __init__(
        self,
        api_key: str = "",
        api_secret: str = "",
        testnet: bool = False,
        client: Optional[Client] = None,
        backoff: Optional[ExponentialBackoff] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if client is None:
            client = Client(api_key or None, api_secret or None)
            if testnet:
                client.FUTURES_URL = "https://testnet.binancefuture.com/fapi"
                logger.info("Binance Futures klines: using TESTNET")
        self._client = client
        self._backoff = backoff or ExponentialBackoff(base_delay=1.0, max_delay=16.0, max_retries=3)
        self._sleep = sleep

    def _page(self, symbol: str, interval: str, limit: int, end_time: Optional[int]) -> list:
        kwargs = {"symbol": symbol, "interval": interval, "limit": limit}
        if end_time is not None:
            kwargs["endTime"] = end_time
        return self._backoff.call(
            lambda: self._client.futures_klines(**kwargs),
            retry_if=_is_rate_limit,
            sleep=self._sleep,
        )

    def fetch_frame(self, symbol: str, interval: str, limit: int = 500) -> pd.DataFrame:
        """Most recent `limit` klines, oldest first, walking backwards in pages."""
        rows: list = []
        end_time: Optional[int] = None
        while len(rows) < limit:
            requested = min(MAX_PAGE, limit - len(rows))
            page = self._page(symbol, interval, requested, end_time)
            if not page:
                break
            rows = page + rows
            if len(page) < requested:
                break
            # next page ends just before the oldest kline we have
            end_time = int(page[0][0]) - 1
        logger.info("Fetched %d %s %s klines", len(rows), symbol, interval)
        df = pd.DataFrame(rows[-limit:], columns=KLINE_COLUMNS)
        df[["open", "high", "low", "close", "volume"]] = df[["open", "high", "low", "close", "volume"]].astype(float)
        df["time"] = pd.to_datetime(df["open_time"].astype("int64"), unit="ms", utc=True)
        return df[["time", "open", "high", "low", "close", "volume"]]

    def fetch(self, symbol: str, interval: str, limit: int = 500) -> List[Bar]:
        return frame_to_bars(self.fetch_frame(symbol, interval, limit))

    def symbol_info(self, symbol: str) -> Optional[dict]:
        """exchangeInfo entry for `symbol` (LOT_SIZE filters for rounding)."""
        info = self._backoff.call(self._client.futures_exchange_info, retry_if=_is_rate_limit, sleep=self._sleep)
        for s in info.get("symbols", []):
            if s.get("symbol") == symbol:
                return s
        return None
