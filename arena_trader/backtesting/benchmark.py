"""
Multi-oracle benchmark: the same bars replayed against several oracles,
ranked by total return.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence, Union

import pandas as pd

from arena_trader.analytics.report import Report
from arena_trader.backtesting.engine import BacktestEngine
from arena_trader.core.config import BacktestConfig
from arena_trader.core.errors import ErrorLog
from arena_trader.core.types import Bar
from arena_trader.data.klines import frame_to_bars
from arena_trader.oracle.base import DecisionOracle
from arena_trader.risk.manager import RiskManager

logger = logging.getLogger("arena_trader.benchmark")


@dataclass(frozen=True)
class BenchmarkEntry:
    name: str
    report: Report

    @property
    def total_return_percent(self) -> float:
        return self.report.total_return_percent


def run_benchmark(
    bars: Union[Sequence[Bar], pd.DataFrame],
    oracles: Mapping[str, DecisionOracle],
    config: Optional[BacktestConfig] = None,
    max_leverage: float = 30.0,
    max_position_pct: float = 100.0,
    symbol_info: Optional[dict] = None,
) -> List[BenchmarkEntry]:
    """
    One independent engine per oracle (fresh risk manager and error log),
    sorted by total return percent, best first. `symbol_info` is the
    exchangeInfo entry whose LOT_SIZE filter every run rounds to.
    """
    config = config or BacktestConfig()
    if isinstance(bars, pd.DataFrame):
        bars = frame_to_bars(bars)
    entries: List[BenchmarkEntry] = []
    for name, oracle in oracles.items():
        run_config = BacktestConfig.from_dict({**config.to_dict(), "oracle_name": name})
        risk_manager = RiskManager(
            min_notional=config.min_notional,
            max_leverage=max_leverage,
            max_position_pct=max_position_pct,
        )
        if symbol_info is not None:
            risk_manager.update_symbol_info(symbol_info)
        engine = BacktestEngine(run_config, oracle, risk_manager=risk_manager, error_log=ErrorLog())
        logger.info("Benchmark run: %s", name)
        entries.append(BenchmarkEntry(name=name, report=engine.run(bars)))
    entries.sort(key=lambda e: e.total_return_percent, reverse=True)
    return entries


def format_leaderboard(entries: Sequence[BenchmarkEntry]) -> str:
    lines = [
        "LEADERBOARD (by Total Return)",
        "",
        f"{'#':>3}  {'Oracle':<25} {'Return %':>10} {'Trades':>7} {'Win %':>7} {'Max DD %':>9} {'Sharpe':>8}",
    ]
    for rank, e in enumerate(entries, 1):
        r = e.report
        lines.append(
            f"{rank:>3}. {e.name:<25} {r.total_return_percent:>+10.2f} {r.total_trades:>7d} "
            f"{r.win_rate:>7.2f} {r.max_drawdown_percent:>9.2f} {r.sharpe_ratio:>8.3f}"
        )
    if entries:
        avg = sum(e.total_return_percent for e in entries) / len(entries)
        lines += [
            "",
            f"Best performer:  {entries[0].name}",
            f"Worst performer: {entries[-1].name}",
            f"Average return:  {avg:.2f}%",
            f"Total trades:    {sum(e.report.total_trades for e in entries)}",
        ]
    return "\n".join(lines)
