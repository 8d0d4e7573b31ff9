"""
Fixed-window request limiter. One instance per client and run, passed in
explicitly; the clock is injectable for tests.
"""

from __future__ import annotations
import time
from dataclasses import dataclass
from typing import Callable, Dict

# Requests per minute by oracle provider
PROVIDER_LIMITS = {
    "deepseek": 100,
    "openai": 3500,
    "anthropic": 1000,
}


@dataclass
class _Window:
    count: int
    start: float


class RateLimiter:
    """Allow at most `max_requests` per `window_s` seconds per key."""

    def __init__(
        self,
        max_requests: int,
        window_s: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_s = window_s
        self._clock = clock
        self._windows: Dict[str, _Window] = {}

    @classmethod
    def for_provider(cls, provider: str, clock: Callable[[], float] = time.monotonic) -> "RateLimiter":
        return cls(PROVIDER_LIMITS.get(provider, 100), 60.0, clock)

    def try_acquire(self, key: str = "default") -> bool:
        """Count one request for `key`; False if the window is already full."""
        now = self._clock()
        window = self._windows.get(key)
        if window is None or now - window.start > self.window_s:
            self._windows[key] = _Window(count=1, start=now)
            return True
        if window.count < self.max_requests:
            window.count += 1
            return True
        return False

    def retry_after(self, key: str = "default") -> float:
        """Seconds until the current window for `key` resets."""
        window = self._windows.get(key)
        if window is None:
            return 0.0
        return max(0.0, self.window_s - (self._clock() - window.start))

    def reset(self, key: str = "default") -> None:
        self._windows.pop(key, None)

    def clear(self) -> None:
        self._windows.clear()
