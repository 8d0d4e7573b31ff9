"""
LLM-backed decision oracle. One oracle class; each vendor's HTTP request
shape and response extraction lives in a VendorAdapter.
"""

from __future__ import annotations
import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

import requests

from arena_trader.core.errors import ErrorType, OracleError, classify_error
from arena_trader.oracle.base import Decision, DecisionOracle, MarketSnapshot
from arena_trader.oracle.parsing import parse_decision_text
from arena_trader.oracle.prompts import PromptBuilder
from arena_trader.utils.backoff import ExponentialBackoff, RetriesExhausted
from arena_trader.utils.rate_limiter import RateLimiter

logger = logging.getLogger("arena_trader.oracle.llm")

# (url, headers, json payload)
HttpRequest = Tuple[str, Dict[str, str], Dict[str, Any]]


class VendorAdapter(ABC):
    """Builds a vendor's chat request and pulls the completion text out of its reply."""

    provider: str = ""
    default_model: str = ""
    default_base_url: str = ""

    @abstractmethod
    def build_request(
        self,
        base_url: str,
        api_key: str,
        model: str,
        system: str,
        user: str,
        temperature: float,
        max_tokens: int,
    ) -> HttpRequest:
        ...

    @abstractmethod
    def extract_text(self, data: Dict[str, Any]) -> str:
        ...


class _ChatCompletionsAdapter(VendorAdapter):
    """OpenAI-compatible /chat/completions."""

    def build_request(self, base_url, api_key, model, system, user, temperature, max_tokens):
        url = f"{base_url.rstrip('/')}/chat/completions"
        headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}
        payload = {
            "model": model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        return url, headers, payload

    def extract_text(self, data):
        return data["choices"][0]["message"]["content"]


class DeepSeekAdapter(_ChatCompletionsAdapter):
    provider = "deepseek"
    default_model = "deepseek-chat"
    default_base_url = "https://api.deepseek.com"


class OpenAIAdapter(_ChatCompletionsAdapter):
    provider = "openai"
    default_model = "gpt-4-turbo-preview"
    default_base_url = "https://api.openai.com/v1"


class AnthropicAdapter(VendorAdapter):
    provider = "anthropic"
    default_model = "claude-3-5-sonnet-20241022"
    default_base_url = "https://api.anthropic.com/v1"
    api_version = "2023-06-01"

    def build_request(self, base_url, api_key, model, system, user, temperature, max_tokens):
        url = f"{base_url.rstrip('/')}/messages"
        headers = {
            "x-api-key": api_key,
            "anthropic-version": self.api_version,
            "Content-Type": "application/json",
        }
        payload = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "system": system,
            "messages": [{"role": "user", "content": user}],
        }
        return url, headers, payload

    def extract_text(self, data):
        return data["content"][0]["text"]


ADAPTERS = {
    "deepseek": DeepSeekAdapter,
    "openai": OpenAIAdapter,
    "anthropic": AnthropicAdapter,
}


def adapter_for(provider: str) -> VendorAdapter:
    try:
        return ADAPTERS[provider.lower()]()
    except KeyError:
        raise ValueError(f"Unknown oracle provider: {provider}") from None


@dataclass
class OracleStats:
    provider: str
    model: str
    request_count: int = 0
    error_count: int = 0
    total_latency_s: float = 0.0

    @property
    def average_latency_s(self) -> float:
        return self.total_latency_s / self.request_count if self.request_count else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "model": self.model,
            "request_count": self.request_count,
            "error_count": self.error_count,
            "average_latency_s": self.average_latency_s,
        }


class LLMOracle(DecisionOracle):
    """
    Calls a chat-completion API and parses the JSON decision out of the reply.

    Transport errors are classified; retryable ones (timeouts, 429, 5xx,
    connection resets) are retried with exponential backoff. Anything that
    still fails raises OracleError. Malformed model output is not an error:
    it parses to HOLD.
    """

    def __init__(
        self,
        adapter: VendorAdapter,
        api_key: str,
        model: str = "",
        base_url: str = "",
        prompt_builder: Optional[PromptBuilder] = None,
        temperature: float = 0.3,
        max_tokens: int = 2000,
        request_timeout_s: float = 30.0,
        rate_limiter: Optional[RateLimiter] = None,
        backoff: Optional[ExponentialBackoff] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
        name: str = "",
    ):
        if not api_key:
            raise ValueError(f"{adapter.provider} oracle requires an API key")
        self.adapter = adapter
        self.model = model or adapter.default_model
        self.base_url = base_url or adapter.default_base_url
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.request_timeout_s = request_timeout_s
        self.rate_limiter = rate_limiter or RateLimiter.for_provider(adapter.provider)
        self.backoff = backoff or ExponentialBackoff(base_delay=1.0, max_delay=16.0, max_retries=3)
        self.session = session or requests.Session()
        self._sleep = sleep
        self._api_key = api_key
        self.name = name or f"{adapter.provider}:{self.model}"
        self.stats = OracleStats(provider=adapter.provider, model=self.model)

    async def decide(self, snapshot: MarketSnapshot) -> Decision:
        return await asyncio.to_thread(self.decide_sync, snapshot)

    def decide_sync(self, snapshot: MarketSnapshot) -> Decision:
        if not self.rate_limiter.try_acquire(self.adapter.provider):
            self.stats.error_count += 1
            wait = self.rate_limiter.retry_after(self.adapter.provider)
            raise OracleError(
                ErrorType.ORACLE_RATE_LIMIT,
                f"{self.adapter.provider} local rate limit reached, retry after {wait:.1f}s",
                retryable=True,
            )

        system = self.prompt_builder.system_prompt()
        user = self.prompt_builder.user_prompt(snapshot)
        try:
            content = self.backoff.call(
                lambda: self._complete(system, user),
                retry_if=lambda e: classify_error(e).retryable,
                sleep=self._sleep,
            )
        except RetriesExhausted as e:
            self.stats.error_count += 1
            raise self._oracle_error(e.last_error) from e
        except Exception as e:
            self.stats.error_count += 1
            raise self._oracle_error(e) from e

        decision = parse_decision_text(content)
        logger.debug("%s -> %s (conf=%.0f)", self.name, decision.action.value, decision.confidence)
        return decision

    def _complete(self, system: str, user: str) -> str:
        url, headers, payload = self.adapter.build_request(
            self.base_url, self._api_key, self.model, system, user, self.temperature, self.max_tokens
        )
        start = time.perf_counter()
        r = self.session.post(url, headers=headers, json=payload, timeout=self.request_timeout_s)
        r.raise_for_status()
        text = self.adapter.extract_text(r.json())
        self.stats.request_count += 1
        self.stats.total_latency_s += time.perf_counter() - start
        return text

    def reset_stats(self) -> None:
        self.stats = OracleStats(provider=self.adapter.provider, model=self.model)

    @staticmethod
    def _oracle_error(exc: BaseException) -> OracleError:
        err = classify_error(exc)
        if isinstance(err, OracleError):
            return err
        error_type = err.error_type if err.error_type.name.startswith("ORACLE_") else ErrorType.ORACLE_API_ERROR
        return OracleError(error_type, str(err.args[0]) if err.args else str(exc), err.retryable, err.code)


def build_llm_oracle(
    provider: str,
    api_key: str,
    model: str = "",
    base_url: str = "",
    temperature: float = 0.3,
    max_tokens: int = 2000,
    requests_per_minute: Optional[int] = None,
    max_retries: int = 3,
    min_notional: float = 5.0,
) -> LLMOracle:
    adapter = adapter_for(provider)
    limiter = (
        RateLimiter(requests_per_minute)
        if requests_per_minute
        else RateLimiter.for_provider(adapter.provider)
    )
    return LLMOracle(
        adapter,
        api_key,
        model=model,
        base_url=base_url,
        prompt_builder=PromptBuilder(min_notional=min_notional),
        temperature=temperature,
        max_tokens=max_tokens,
        rate_limiter=limiter,
        backoff=ExponentialBackoff(base_delay=1.0, max_delay=16.0, max_retries=max_retries),
    )
