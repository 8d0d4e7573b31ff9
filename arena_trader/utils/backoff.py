"""
Exponential backoff as an explicit state object (attempt count, next delay).
Sleep and jitter sources are injectable so retry loops can be driven
synchronously in tests without real timers.
"""

from __future__ import annotations
import logging
import random
import time
from typing import Callable, Optional, TypeVar

logger = logging.getLogger("arena_trader.utils.backoff")

T = TypeVar("T")


class RetriesExhausted(Exception):
    """Raised when a supervised call fails more than max_retries times."""

    def __init__(self, attempts: int, last_error: BaseException):
        super().__init__(f"max retries ({attempts}) exceeded: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


class ExponentialBackoff:
    """delay(attempt) = min(base_delay * 2**attempt, max_delay) + jitter."""

    def __init__(
        self,
        base_delay: float = 1.0,
        max_delay: float = 32.0,
        max_retries: int = 5,
        jitter: float = 0.0,
        rng: Optional[random.Random] = None,
    ):
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.max_retries = max_retries
        self.jitter = jitter
        self._rng = rng or random.Random()
        self.attempt = 0

    @property
    def next_delay(self) -> float:
        """Delay (seconds, without jitter) the next failure will wait."""
        return min(self.base_delay * (2 ** self.attempt), self.max_delay)

    @property
    def exhausted(self) -> bool:
        return self.attempt >= self.max_retries

    def failure(self) -> float:
        """Register a failure; return the delay to wait before retrying."""
        delay = self.next_delay
        if self.jitter > 0:
            delay += self._rng.uniform(0, self.jitter)
        self.attempt += 1
        return delay

    def reset(self) -> None:
        self.attempt = 0

    def call(
        self,
        fn: Callable[[], T],
        retry_if: Callable[[BaseException], bool] = lambda e: True,
        sleep: Callable[[float], None] = time.sleep,
    ) -> T:
        """
        Run `fn` until it succeeds, retrying errors accepted by `retry_if`.
        Non-retryable errors propagate immediately. State resets on success.
        """
        while True:
            try:
                result = fn()
            except Exception as e:
                if not retry_if(e):
                    raise
                if self.exhausted:
                    attempts = self.attempt
                    self.reset()
                    raise RetriesExhausted(attempts, e) from e
                delay = self.failure()
                logger.warning("Retry %d/%d in %.2fs after: %s", self.attempt, self.max_retries, delay, e)
                sleep(delay)
                continue
            self.reset()
            return result
