"""Utils: backoff, rate limiting, exchange filters, timeframes, Telegram."""

from arena_trader.utils.backoff import ExponentialBackoff, RetriesExhausted
from arena_trader.utils.rate_limiter import RateLimiter
from arena_trader.utils.telegram import send_report_summary, send_telegram
from arena_trader.utils.timeframes import bars_for_days, timeframe_minutes

__all__ = [
    "ExponentialBackoff",
    "RetriesExhausted",
    "RateLimiter",
    "send_report_summary",
    "send_telegram",
    "bars_for_days",
    "timeframe_minutes",
]
