"""Telegram notifier with requests.post patched out."""

import requests

from arena_trader.utils import telegram
from arena_trader.utils.telegram import MAX_MESSAGE_LEN, report_summary, send_report_summary, send_telegram


class FakeResponse:
    def __init__(self, status_code, text="ok"):
        self.status_code = status_code
        self.text = text


def test_not_configured_skips(monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("should not post")

    monkeypatch.setattr(telegram.requests, "post", fail)
    assert send_telegram("hello") is False
    assert send_telegram("hello", bot_token="t") is False


def test_send_truncates_message(monkeypatch):
    calls = []

    def post(url, json=None, timeout=None):
        calls.append((url, json))
        return FakeResponse(200)

    monkeypatch.setattr(telegram.requests, "post", post)
    assert send_telegram("x" * 5000, bot_token="TOKEN", chat_id="42") is True
    url, payload = calls[0]
    assert url == "https://api.telegram.org/botTOKEN/sendMessage"
    assert payload["chat_id"] == "42"
    assert len(payload["text"]) == MAX_MESSAGE_LEN


def test_http_failure_returns_false(monkeypatch):
    monkeypatch.setattr(telegram.requests, "post", lambda *a, **k: FakeResponse(400, "Bad Request"))
    assert send_telegram("hi", bot_token="t", chat_id="c") is False


def test_network_error_returns_false(monkeypatch):
    def post(*args, **kwargs):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(telegram.requests, "post", post)
    assert send_telegram("hi", bot_token="t", chat_id="c") is False


def test_report_summary(rising_bars, monkeypatch):
    from arena_trader.backtesting.engine import BacktestEngine
    from arena_trader.core.config import BacktestConfig
    from arena_trader.oracle.scripted import ScriptedOracle

    config = BacktestConfig(oracle_name="scripted")
    report = BacktestEngine(config, ScriptedOracle({201: {"action": "BUY", "confidence": 90}})).run(rising_bars)
    text = report_summary(report)
    assert text.startswith("Backtest BTCUSDT (scripted)")
    assert "Trades: 1 | Win rate: 100.0%" in text
    assert "Errors" not in text

    sent = []
    monkeypatch.setattr(telegram.requests, "post", lambda url, json=None, timeout=None: sent.append(json) or FakeResponse(200))
    assert send_report_summary(report, bot_token="t", chat_id="c") is True
    assert sent[0]["text"] == text
