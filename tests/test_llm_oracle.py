"""LLM oracle against a fake HTTP session."""

import asyncio
import json
from dataclasses import replace

import pytest
import requests

from arena_trader.backtesting.engine import BacktestEngine
from arena_trader.core.config import BacktestConfig
from arena_trader.core.errors import ErrorType, OracleError
from arena_trader.core.types import OracleAction
from arena_trader.oracle.llm import (
    AnthropicAdapter,
    DeepSeekAdapter,
    LLMOracle,
    OpenAIAdapter,
    adapter_for,
    build_llm_oracle,
)
from arena_trader.utils.backoff import ExponentialBackoff
from arena_trader.utils.rate_limiter import RateLimiter

DECISION_TEXT = 'Looking at the trend...\n{"action": "BUY", "confidence": 85, "reasoning": "uptrend", "leverage": 5}'


def _response(status, data=None):
    r = requests.Response()
    r.status_code = status
    r.url = "https://example.test"
    r._content = json.dumps(data or {}).encode()
    return r


def _chat(text):
    return {"choices": [{"message": {"role": "assistant", "content": text}}]}


class FakeSession:
    """Replays queued responses or exceptions; records every post."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []

    def post(self, url, headers=None, json=None, timeout=None):
        self.calls.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def _oracle(session, adapter=None, sleeps=None, **kwargs):
    return LLMOracle(
        adapter or DeepSeekAdapter(),
        "test-key",
        session=session,
        backoff=ExponentialBackoff(base_delay=1.0, max_retries=2),
        rate_limiter=kwargs.pop("rate_limiter", RateLimiter(100, clock=FakeClock())),
        sleep=(sleeps.append if sleeps is not None else lambda s: None),
        **kwargs,
    )


def test_deepseek_request_and_decision(make_snapshot):
    session = FakeSession(_response(200, _chat(DECISION_TEXT)))
    oracle = _oracle(session)
    decision = oracle.decide_sync(make_snapshot())

    assert decision.action == OracleAction.BUY
    assert decision.confidence == 85
    assert decision.leverage == 5
    call = session.calls[0]
    assert call["url"] == "https://api.deepseek.com/chat/completions"
    assert call["headers"]["Authorization"] == "Bearer test-key"
    assert call["json"]["model"] == "deepseek-chat"
    assert [m["role"] for m in call["json"]["messages"]] == ["system", "user"]
    assert "BTCUSDT" in call["json"]["messages"][1]["content"]
    assert call["timeout"] == 30.0
    assert oracle.stats.request_count == 1
    assert oracle.stats.error_count == 0
    assert oracle.name == "deepseek:deepseek-chat"


def test_openai_custom_model_and_base_url(make_snapshot):
    session = FakeSession(_response(200, _chat(DECISION_TEXT)))
    oracle = _oracle(session, OpenAIAdapter(), model="gpt-4o", base_url="http://localhost:8080/v1/")
    oracle.decide_sync(make_snapshot())
    assert session.calls[0]["url"] == "http://localhost:8080/v1/chat/completions"
    assert session.calls[0]["json"]["model"] == "gpt-4o"


def test_anthropic_request_shape(make_snapshot):
    session = FakeSession(_response(200, {"content": [{"type": "text", "text": DECISION_TEXT}]}))
    oracle = _oracle(session, AnthropicAdapter())
    decision = oracle.decide_sync(make_snapshot())

    assert decision.action == OracleAction.BUY
    call = session.calls[0]
    assert call["url"] == "https://api.anthropic.com/v1/messages"
    assert call["headers"]["x-api-key"] == "test-key"
    assert call["headers"]["anthropic-version"] == "2023-06-01"
    assert "JSON" in call["json"]["system"]
    assert [m["role"] for m in call["json"]["messages"]] == ["user"]


def test_server_error_is_retried(make_snapshot):
    sleeps = []
    session = FakeSession(_response(503), _response(200, _chat(DECISION_TEXT)))
    oracle = _oracle(session, sleeps=sleeps)
    assert oracle.decide_sync(make_snapshot()).action == OracleAction.BUY
    assert sleeps == [1.0]
    assert len(session.calls) == 2


def test_connection_error_is_retried(make_snapshot):
    sleeps = []
    session = FakeSession(requests.ConnectionError("reset"), _response(200, _chat(DECISION_TEXT)))
    oracle = _oracle(session, sleeps=sleeps)
    assert oracle.decide_sync(make_snapshot()).action == OracleAction.BUY
    assert sleeps == [1.0]


def test_auth_error_not_retried(make_snapshot):
    sleeps = []
    oracle = _oracle(FakeSession(_response(401)), sleeps=sleeps)
    with pytest.raises(OracleError) as excinfo:
        oracle.decide_sync(make_snapshot())
    assert excinfo.value.error_type == ErrorType.ORACLE_API_ERROR
    assert excinfo.value.code == 401
    assert sleeps == []
    assert oracle.stats.error_count == 1


def test_rate_limited_until_retries_exhausted(make_snapshot):
    sleeps = []
    oracle = _oracle(FakeSession(_response(429), _response(429), _response(429)), sleeps=sleeps)
    with pytest.raises(OracleError) as excinfo:
        oracle.decide_sync(make_snapshot())
    assert excinfo.value.error_type == ErrorType.ORACLE_RATE_LIMIT
    assert sleeps == [1.0, 2.0]


def test_malformed_reply_body_is_invalid_response(make_snapshot):
    oracle = _oracle(FakeSession(_response(200, {"unexpected": True})))
    with pytest.raises(OracleError) as excinfo:
        oracle.decide_sync(make_snapshot())
    assert excinfo.value.error_type == ErrorType.ORACLE_INVALID_RESPONSE


def test_unparseable_model_text_is_hold(make_snapshot):
    oracle = _oracle(FakeSession(_response(200, _chat("I am not sure."))))
    decision = oracle.decide_sync(make_snapshot())
    assert decision.action == OracleAction.HOLD
    assert decision.confidence == 0


def test_local_rate_limit(make_snapshot):
    session = FakeSession(_response(200, _chat(DECISION_TEXT)))
    oracle = _oracle(session, rate_limiter=RateLimiter(1, clock=FakeClock()))
    oracle.decide_sync(make_snapshot())
    with pytest.raises(OracleError) as excinfo:
        oracle.decide_sync(make_snapshot())
    assert excinfo.value.error_type == ErrorType.ORACLE_RATE_LIMIT
    assert len(session.calls) == 1
    assert oracle.stats.error_count == 1


def test_async_decide(make_snapshot):
    oracle = _oracle(FakeSession(_response(200, _chat(DECISION_TEXT))))
    decision = asyncio.run(oracle.decide(make_snapshot()))
    assert decision.action == OracleAction.BUY


def test_stats_reset(make_snapshot):
    oracle = _oracle(FakeSession(_response(200, _chat(DECISION_TEXT))))
    oracle.decide_sync(make_snapshot())
    assert oracle.stats.to_dict()["request_count"] == 1
    oracle.reset_stats()
    assert oracle.stats.request_count == 0
    assert oracle.stats.average_latency_s == 0.0


def test_missing_api_key():
    with pytest.raises(ValueError):
        LLMOracle(DeepSeekAdapter(), "")


def test_adapter_for():
    assert isinstance(adapter_for("DeepSeek"), DeepSeekAdapter)
    assert isinstance(adapter_for("anthropic"), AnthropicAdapter)
    with pytest.raises(ValueError):
        adapter_for("llama")


def test_build_llm_oracle():
    oracle = build_llm_oracle("openai", "k", requests_per_minute=10, max_retries=1, min_notional=20.0)
    assert oracle.model == "gpt-4-turbo-preview"
    assert oracle.rate_limiter.max_requests == 10
    assert oracle.backoff.max_retries == 1
    assert "$20 USDT" in oracle.prompt_builder.system_prompt()


def test_failing_vendor_degrades_to_hold_in_engine(make_bars):
    replies = [_response(401) for _ in range(3)]
    oracle = _oracle(FakeSession(*replies))
    cfg = replace(BacktestConfig(), warmup_bars=20, lookback_bars=20)
    report = BacktestEngine(cfg, oracle).run(make_bars([100.0 + i for i in range(23)]))
    assert report.total_trades == 0
    assert report.error_stats == {"ORACLE_API_ERROR": 3}
