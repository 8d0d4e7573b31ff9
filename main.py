#!/usr/bin/env python3
"""
Arena Trader CLI: backtest | benchmark
Usage:
  python main.py backtest [--config config.yaml] [--data klines.csv] [--oracle rule|deepseek|openai|anthropic]
  python main.py benchmark [--config config.yaml] [--data klines.csv] [--oracles rule,deepseek]
"""

from __future__ import annotations
import argparse
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import requests
from binance.exceptions import BinanceAPIException

# Project root
ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from arena_trader.analytics.render import format_console, format_markdown, to_json
from arena_trader.analytics.report import Report
from arena_trader.backtesting.benchmark import format_leaderboard, run_benchmark
from arena_trader.backtesting.engine import BacktestEngine
from arena_trader.core.config import ORACLE_KEY_ENV, Config, load_config
from arena_trader.core.errors import DataValidationError, ErrorLog, classify_error
from arena_trader.core.logger import setup_logging
from arena_trader.core.types import Bar
from arena_trader.data.binance_klines import BinanceKlineClient
from arena_trader.data.klines import load_csv
from arena_trader.oracle.base import DecisionOracle
from arena_trader.oracle.llm import build_llm_oracle
from arena_trader.oracle.rule_based import TrendRsiOracle
from arena_trader.risk.manager import RiskManager
from arena_trader.utils.telegram import send_report_summary
from arena_trader.utils.timeframes import bars_for_days

logger = logging.getLogger("arena_trader")


def build_oracle(config: Config, provider: str) -> DecisionOracle:
    """Raises ValueError if an LLM provider has no API key in the environment."""
    provider = provider.lower()
    if provider == "rule":
        return TrendRsiOracle()
    if provider not in ORACLE_KEY_ENV:
        raise ValueError(f"Unknown oracle: {provider}")
    if provider == config.oracle_provider:
        api_key = config.oracle_api_key
        model, base_url = config.oracle_model, config.oracle_base_url
    else:
        api_key = os.getenv(ORACLE_KEY_ENV[provider], "").strip()
        model, base_url = "", ""
    if not api_key:
        raise ValueError(f"{provider} oracle needs {ORACLE_KEY_ENV[provider]} in .env")
    return build_llm_oracle(
        provider,
        api_key,
        model=model,
        base_url=base_url,
        temperature=config.oracle_temperature,
        max_tokens=config.oracle_max_tokens,
        requests_per_minute=config.oracle_requests_per_minute,
        max_retries=config.oracle_max_retries,
        min_notional=config.min_notional,
    )


def build_risk_manager(config: Config, symbol_info: Optional[dict] = None) -> RiskManager:
    """Lot filters from exchangeInfo, when fetched, replace the configured ones."""
    risk_manager = RiskManager(
        min_notional=config.min_notional,
        max_leverage=config.max_leverage,
        max_position_pct=config.max_position_pct,
        min_qty=config.min_qty,
        lot_step=config.lot_step,
    )
    if symbol_info is not None:
        risk_manager.update_symbol_info(symbol_info)
    return risk_manager


def load_bars(
    config: Config,
    data_file: Optional[Path],
    days: Optional[int],
) -> Tuple[List[Bar], Optional[dict]]:
    """
    CSV if given (flag or config), else Binance futures klines. Returns the
    bars and the exchangeInfo entry for the symbol (None for CSV input).
    """
    path = data_file or config.data_file
    if path is not None:
        logger.info("Loading klines from %s", path)
        return load_csv(path), None
    limit = bars_for_days(days or config.days, config.timeframe) + config.warmup_bars
    client = BinanceKlineClient(
        config.binance_api_key,
        config.binance_api_secret,
        testnet=config.use_testnet,
    )
    bars = client.fetch(config.symbol, config.timeframe, limit=limit)
    symbol_info = client.symbol_info(config.symbol)
    if symbol_info is None:
        logger.warning("No exchangeInfo entry for %s, using configured lot filters", config.symbol)
    return bars, symbol_info


def write_reports(report: Report, report_dir: Path) -> Path:
    report_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    base = report_dir / f"backtest-{report.config.symbol}-{report.config.oracle_name or 'oracle'}-{stamp}"
    base.with_suffix(".md").write_text(format_markdown(report), encoding="utf-8")
    base.with_suffix(".json").write_text(to_json(report), encoding="utf-8")
    return base


def run_backtest(args: argparse.Namespace) -> int:
    """Run one backtest and write markdown + JSON reports."""
    config = load_config(args.config, ROOT)
    setup_logging(config.log_level, config.log_dir, config.log_file)
    provider = args.oracle or config.oracle_provider
    try:
        oracle = build_oracle(config, provider)
        bars, symbol_info = load_bars(config, args.data, args.days)
    except ValueError as e:
        logger.error("%s", e)
        return 1
    except (BinanceAPIException, requests.RequestException) as e:
        logger.error("Failed to fetch klines: %s", classify_error(e))
        return 1

    engine = BacktestEngine(
        config.backtest_config(oracle_name=provider),
        oracle,
        risk_manager=build_risk_manager(config, symbol_info),
        error_log=ErrorLog(),
    )
    try:
        report = engine.run(bars)
    except DataValidationError as e:
        logger.error("Invalid kline data: %s", e)
        return 1

    print(format_console(report))
    base = write_reports(report, args.report_dir or config.report_dir)
    logger.info("Reports written to %s.{md,json}", base)
    if args.notify:
        send_report_summary(report, config.telegram_bot_token, config.telegram_chat_id)
    return 0


def run_benchmark_cmd(args: argparse.Namespace) -> int:
    """Replay the same bars against several oracles and print the leaderboard."""
    config = load_config(args.config, ROOT)
    setup_logging(config.log_level, config.log_dir, config.log_file)
    names = [n.strip().lower() for n in args.oracles.split(",") if n.strip()]
    oracles: Dict[str, DecisionOracle] = {}
    for name in names:
        try:
            oracles[name] = build_oracle(config, name)
        except ValueError as e:
            logger.warning("Skipping %s: %s", name, e)
    if not oracles:
        logger.error("No usable oracles in %s", args.oracles)
        return 1
    try:
        bars, symbol_info = load_bars(config, args.data, args.days)
        entries = run_benchmark(
            bars,
            oracles,
            config.backtest_config(),
            max_leverage=config.max_leverage,
            max_position_pct=config.max_position_pct,
            symbol_info=symbol_info,
        )
    except DataValidationError as e:
        logger.error("Invalid kline data: %s", e)
        return 1
    except (BinanceAPIException, requests.RequestException) as e:
        logger.error("Failed to fetch klines: %s", classify_error(e))
        return 1
    print(format_leaderboard(entries))
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Arena Trader CLI")
    sub = parser.add_subparsers(dest="mode", required=True)

    bt = sub.add_parser("backtest", help="Backtest one decision oracle")
    bt.add_argument("--config", type=Path, default=None, help="Path to config.yaml")
    bt.add_argument("--data", type=Path, default=None, help="Kline CSV (default: fetch from Binance)")
    bt.add_argument("--oracle", choices=["rule", *ORACLE_KEY_ENV], default=None, help="Decision oracle")
    bt.add_argument("--days", type=int, default=None, help="Days of klines to fetch")
    bt.add_argument("--report-dir", type=Path, default=None, help="Where to write reports")
    bt.add_argument("--notify", action="store_true", help="Send summary to Telegram")

    bm = sub.add_parser("benchmark", help="Rank several oracles on the same bars")
    bm.add_argument("--config", type=Path, default=None, help="Path to config.yaml")
    bm.add_argument("--data", type=Path, default=None, help="Kline CSV (default: fetch from Binance)")
    bm.add_argument("--oracles", default="rule,deepseek,openai,anthropic", help="Comma-separated oracle names")
    bm.add_argument("--days", type=int, default=None, help="Days of klines to fetch")

    args = parser.parse_args()
    if args.mode == "backtest":
        return run_backtest(args)
    return run_benchmark_cmd(args)


if __name__ == "__main__":
    exit(main())
