"""Telegram delivery of run summaries. Never log token or chat_id."""

from __future__ import annotations
import logging

import requests

from arena_trader.analytics.report import Report

logger = logging.getLogger("arena_trader.utils.telegram")

# Telegram rejects messages longer than this
MAX_MESSAGE_LEN = 4096


def send_telegram(text: str, bot_token: str = "", chat_id: str = "") -> bool:
    """Send message to Telegram. Returns True on success, False if not configured or on failure."""
    if not bot_token or not chat_id:
        logger.debug("Telegram not configured, skipping message (len=%d)", len(text))
        return False
    url = f"https://api.telegram.org/bot{bot_token}/sendMessage"
    try:
        r = requests.post(url, json={"chat_id": chat_id, "text": text[:MAX_MESSAGE_LEN]}, timeout=10)
    except requests.RequestException as e:
        logger.error("Telegram error: %s", e)
        return False
    if r.status_code != 200:
        logger.warning("Telegram send failed: %s %s", r.status_code, r.text[:200])
        return False
    return True


def report_summary(report: Report) -> str:
    cfg = report.config
    lines = [
        f"Backtest {cfg.symbol} ({cfg.oracle_name or 'oracle'})" + (" [cancelled]" if report.cancelled else ""),
        f"Return: {report.total_return_percent:+.2f}% (${report.final_capital:.2f})",
        f"Trades: {report.total_trades} | Win rate: {report.win_rate:.1f}%",
        f"Max DD: {report.max_drawdown_percent:.2f}% | Sharpe: {report.sharpe_ratio:.2f}",
    ]
    if report.error_stats:
        lines.append("Errors: " + ", ".join(f"{k}={v}" for k, v in sorted(report.error_stats.items())))
    return "\n".join(lines)


def send_report_summary(report: Report, bot_token: str = "", chat_id: str = "") -> bool:
    return send_telegram(report_summary(report), bot_token, chat_id)
