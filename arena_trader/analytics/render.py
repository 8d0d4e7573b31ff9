"""Console, markdown and JSON projections of a Report."""

from __future__ import annotations
import json
from dataclasses import dataclass
from typing import List

from arena_trader.analytics.report import Report
from arena_trader.core.types import Trade

RULE = "=" * 80

_LABELS = {5: "Excellent", 4: "Good", 3: "Average", 2: "Below Average", 1: "Poor"}


@dataclass(frozen=True)
class Rating:
    return_rating: int
    win_rate_rating: int
    risk_rating: int

    @property
    def overall(self) -> int:
        # half rounds up
        return int((self.return_rating + self.win_rate_rating + self.risk_rating) / 3 + 0.5)

    @property
    def stars(self) -> str:
        return "*" * self.overall

    @property
    def label(self) -> str:
        return _LABELS.get(self.overall, "Failed")


def _step(value: float, thresholds: List[float]) -> int:
    """Count of thresholds strictly exceeded, thresholds ascending."""
    return sum(1 for t in thresholds if value > t)


def performance_rating(report: Report) -> Rating:
    """Score return, win rate and risk-adjusted performance 0-5 each."""
    return_rating = _step(report.total_return_percent, [0, 5, 15, 30, 50])
    win_rate_rating = _step(report.win_rate, [30, 40, 50, 60, 70])
    sharpe, dd = report.sharpe_ratio, report.max_drawdown_percent
    if sharpe > 2 and dd < 10:
        risk = 5
    elif sharpe > 1.5 and dd < 15:
        risk = 4
    elif sharpe > 1 and dd < 20:
        risk = 3
    elif sharpe > 0.5 and dd < 30:
        risk = 2
    elif sharpe > 0:
        risk = 1
    else:
        risk = 0
    return Rating(return_rating, win_rate_rating, risk)


def _trade_line(i: int, t: Trade) -> str:
    return f"{i}. {t.side.value} | {t.entry_time:%Y-%m-%d} | PnL: ${t.pnl:.2f} ({t.pnl_percent:.2f}%)"


def best_trades(report: Report, n: int = 5) -> List[Trade]:
    return sorted(report.trades, key=lambda t: t.pnl, reverse=True)[:n]


def worst_trades(report: Report, n: int = 5) -> List[Trade]:
    return sorted(report.trades, key=lambda t: t.pnl)[:n]


def format_console(report: Report) -> str:
    cfg = report.config
    rating = performance_rating(report)
    lines = [
        RULE,
        "BACKTEST REPORT" + (" (cancelled)" if report.cancelled else ""),
        RULE,
        "",
        "Configuration",
        f"Symbol: {cfg.symbol}",
    ]
    if cfg.oracle_name:
        lines.append(f"Oracle: {cfg.oracle_name}")
    lines += [
        f"Initial Capital: ${report.initial_capital:.2f}",
        f"Min Confidence: {cfg.min_confidence:g}%",
        f"Commission: {cfg.commission * 100:.2f}%",
        f"Slippage: {cfg.slippage * 100:.2f}%",
        "",
        "Duration",
    ]
    if report.equity_curve:
        lines.append(f"Start: {report.equity_curve[0].time:%Y-%m-%d %H:%M}")
        lines.append(f"End: {report.equity_curve[-1].time:%Y-%m-%d %H:%M}")
    lines += [
        f"Bars Processed: {report.bars_processed}",
        f"Backtest Runtime: {report.duration_s:.2f}s",
        "",
        "Returns",
        f"Final Capital: ${report.final_capital:.2f}",
        f"Total Return: ${report.total_return:.2f} ({report.total_return_percent:.2f}%)",
        "",
        "Trade Statistics",
        f"Total Trades: {report.total_trades}",
        f"Wins: {report.wins} ({report.win_rate:.2f}%)",
        f"Losses: {report.losses}",
        f"Average Win: ${report.average_win:.2f}",
        f"Average Loss: ${report.average_loss:.2f}",
        f"Profit Factor: {report.profit_factor:.2f}",
        f"Expectancy: ${report.expectancy:.2f}",
        "",
        "Risk Metrics",
        f"Max Drawdown: ${report.max_drawdown:.2f} ({report.max_drawdown_percent:.2f}%)",
        f"Sharpe Ratio: {report.sharpe_ratio:.3f}",
        f"Sortino Ratio: {report.sortino_ratio:.3f}",
        "",
        "Performance Rating",
        f"Overall: {rating.stars} {rating.label}",
        f"  - Return: {rating.return_rating}/5",
        f"  - Win Rate: {rating.win_rate_rating}/5",
        f"  - Risk-Adjusted: {rating.risk_rating}/5",
    ]
    if report.trades:
        lines += ["", "Top 5 Best Trades"]
        lines += [_trade_line(i, t) for i, t in enumerate(best_trades(report), 1)]
        lines += ["", "Top 5 Worst Trades"]
        lines += [_trade_line(i, t) for i, t in enumerate(worst_trades(report), 1)]
    if report.error_stats:
        lines += ["", "Errors"]
        lines += [f"{k}: {v}" for k, v in sorted(report.error_stats.items())]
    lines += ["", RULE]
    return "\n".join(lines)


def format_markdown(report: Report, max_trades: int = 20) -> str:
    cfg = report.config
    rating = performance_rating(report)
    md: List[str] = ["# Backtest Report", ""]
    if report.cancelled:
        md += ["> Run was cancelled before the end of the data.", ""]

    md += [
        "## Configuration",
        "",
        "| Item | Value |",
        "|------|-------|",
        f"| Symbol | {cfg.symbol} |",
        f"| Oracle | {cfg.oracle_name or '-'} |",
        f"| Initial Capital | ${report.initial_capital:.2f} |",
        f"| Min Confidence | {cfg.min_confidence:g}% |",
        f"| Commission | {cfg.commission * 100:.2f}% |",
        f"| Slippage | {cfg.slippage * 100:.2f}% |",
        "",
        "## Time Range",
        "",
    ]
    if report.equity_curve:
        md.append(f"- **Start**: {report.equity_curve[0].time:%Y-%m-%d %H:%M}")
        md.append(f"- **End**: {report.equity_curve[-1].time:%Y-%m-%d %H:%M}")
    md += [
        f"- **Bars processed**: {report.bars_processed}",
        f"- **Runtime**: {report.duration_s:.2f}s",
        "",
        "## Returns",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| Final Capital | ${report.final_capital:.2f} |",
        f"| Total Return | ${report.total_return:.2f} |",
        f"| Return % | {report.total_return_percent:.2f}% |",
        "",
        "## Trade Statistics",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| Total Trades | {report.total_trades} |",
        f"| Wins | {report.wins} |",
        f"| Losses | {report.losses} |",
        f"| Win Rate | {report.win_rate:.2f}% |",
        f"| Average Win | ${report.average_win:.2f} |",
        f"| Average Loss | ${report.average_loss:.2f} |",
        f"| Profit Factor | {report.profit_factor:.2f} |",
        f"| Expectancy | ${report.expectancy:.2f} |",
        "",
        "## Risk Metrics",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| Max Drawdown | ${report.max_drawdown:.2f} ({report.max_drawdown_percent:.2f}%) |",
        f"| Sharpe Ratio | {report.sharpe_ratio:.3f} |",
        f"| Sortino Ratio | {report.sortino_ratio:.3f} |",
        "",
        "## Performance Rating",
        "",
        f"**Overall**: {rating.stars} ({rating.label})",
        "",
        f"- Return: {rating.return_rating}/5",
        f"- Win rate: {rating.win_rate_rating}/5",
        f"- Risk-adjusted: {rating.risk_rating}/5",
        "",
    ]

    if report.trades:
        md += ["## Best Trades", ""]
        md += [_trade_line(i, t) for i, t in enumerate(best_trades(report), 1)]
        md += ["", "## Worst Trades", ""]
        md += [_trade_line(i, t) for i, t in enumerate(worst_trades(report), 1)]
        md += [
            "",
            "## Trades",
            "",
            "| # | Side | Entry | Exit | Entry Price | Exit Price | PnL | PnL % | Reason |",
            "|---|------|-------|------|-------------|------------|-----|-------|--------|",
        ]
        for i, t in enumerate(report.trades[-max_trades:], 1):
            md.append(
                f"| {i} | {t.side.value} | {t.entry_time:%Y-%m-%d %H:%M} | {t.exit_time:%Y-%m-%d %H:%M} "
                f"| ${t.entry_price:.2f} | ${t.exit_price:.2f} | ${t.pnl:.2f} | {t.pnl_percent:.2f}% "
                f"| {t.exit_reason.value} |"
            )
        if len(report.trades) > max_trades:
            md += ["", f"*Showing last {max_trades} of {len(report.trades)} trades*"]
    return "\n".join(md) + "\n"


def to_json(report: Report, indent: int = 2) -> str:
    return json.dumps(report.to_dict(), indent=indent)


def from_json(text: str) -> Report:
    return Report.from_dict(json.loads(text))
