"""
Backtest Report: the single immutable result of a run, plus a lossless
dict form (ISO 8601 datetimes, enum values, floats untouched).
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from arena_trader.analytics.equity import EquityTracker
from arena_trader.analytics.metrics import compute_metrics
from arena_trader.core.config import BacktestConfig
from arena_trader.core.types import (
    DecisionRecord,
    DrawdownPoint,
    EquityPoint,
    ExitReason,
    OracleAction,
    Side,
    Trade,
)


@dataclass(frozen=True)
class Report:
    config: BacktestConfig
    initial_capital: float
    final_capital: float
    total_return: float
    total_return_percent: float
    total_trades: int
    wins: int
    losses: int
    win_rate: float
    average_win: float
    average_loss: float
    profit_factor: float
    expectancy: float
    max_drawdown: float
    max_drawdown_percent: float
    sharpe_ratio: float
    sortino_ratio: float
    trades: Tuple[Trade, ...] = ()
    equity_curve: Tuple[EquityPoint, ...] = ()
    drawdown_curve: Tuple[DrawdownPoint, ...] = ()
    decisions: Tuple[DecisionRecord, ...] = ()
    bars_processed: int = 0
    cancelled: bool = False
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    error_stats: Dict[str, int] = field(default_factory=dict)

    @property
    def duration_s(self) -> float:
        if self.started_at is None or self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "config": self.config.to_dict(),
            "initial_capital": self.initial_capital,
            "final_capital": self.final_capital,
            "total_return": self.total_return,
            "total_return_percent": self.total_return_percent,
            "total_trades": self.total_trades,
            "wins": self.wins,
            "losses": self.losses,
            "win_rate": self.win_rate,
            "average_win": self.average_win,
            "average_loss": self.average_loss,
            "profit_factor": self.profit_factor,
            "expectancy": self.expectancy,
            "max_drawdown": self.max_drawdown,
            "max_drawdown_percent": self.max_drawdown_percent,
            "sharpe_ratio": self.sharpe_ratio,
            "sortino_ratio": self.sortino_ratio,
            "trades": [_trade_to_dict(t) for t in self.trades],
            "equity_curve": [{"time": p.time.isoformat(), "equity": p.equity} for p in self.equity_curve],
            "drawdown_curve": [
                {"time": p.time.isoformat(), "drawdown_percent": p.drawdown_percent} for p in self.drawdown_curve
            ],
            "decisions": [_decision_to_dict(d) for d in self.decisions],
            "bars_processed": self.bars_processed,
            "cancelled": self.cancelled,
            "started_at": _iso(self.started_at),
            "finished_at": _iso(self.finished_at),
            "error_stats": dict(self.error_stats),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Report":
        return cls(
            config=BacktestConfig.from_dict(data["config"]),
            initial_capital=data["initial_capital"],
            final_capital=data["final_capital"],
            total_return=data["total_return"],
            total_return_percent=data["total_return_percent"],
            total_trades=data["total_trades"],
            wins=data["wins"],
            losses=data["losses"],
            win_rate=data["win_rate"],
            average_win=data["average_win"],
            average_loss=data["average_loss"],
            profit_factor=data["profit_factor"],
            expectancy=data["expectancy"],
            max_drawdown=data["max_drawdown"],
            max_drawdown_percent=data["max_drawdown_percent"],
            sharpe_ratio=data["sharpe_ratio"],
            sortino_ratio=data["sortino_ratio"],
            trades=tuple(_trade_from_dict(t) for t in data.get("trades", [])),
            equity_curve=tuple(
                EquityPoint(time=datetime.fromisoformat(p["time"]), equity=p["equity"])
                for p in data.get("equity_curve", [])
            ),
            drawdown_curve=tuple(
                DrawdownPoint(time=datetime.fromisoformat(p["time"]), drawdown_percent=p["drawdown_percent"])
                for p in data.get("drawdown_curve", [])
            ),
            decisions=tuple(_decision_from_dict(d) for d in data.get("decisions", [])),
            bars_processed=data.get("bars_processed", 0),
            cancelled=data.get("cancelled", False),
            started_at=_from_iso(data.get("started_at")),
            finished_at=_from_iso(data.get("finished_at")),
            error_stats=dict(data.get("error_stats", {})),
        )


def _iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt is not None else None


def _from_iso(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _trade_to_dict(t: Trade) -> Dict[str, Any]:
    return {
        "entry_time": t.entry_time.isoformat(),
        "exit_time": t.exit_time.isoformat(),
        "side": t.side.value,
        "entry_price": t.entry_price,
        "exit_price": t.exit_price,
        "quantity": t.quantity,
        "leverage": t.leverage,
        "pnl": t.pnl,
        "pnl_percent": t.pnl_percent,
        "entry_commission": t.entry_commission,
        "exit_commission": t.exit_commission,
        "exit_reason": t.exit_reason.value,
    }


def _trade_from_dict(d: Dict[str, Any]) -> Trade:
    return Trade(
        entry_time=datetime.fromisoformat(d["entry_time"]),
        exit_time=datetime.fromisoformat(d["exit_time"]),
        side=Side(d["side"]),
        entry_price=d["entry_price"],
        exit_price=d["exit_price"],
        quantity=d["quantity"],
        leverage=d["leverage"],
        pnl=d["pnl"],
        pnl_percent=d["pnl_percent"],
        entry_commission=d["entry_commission"],
        exit_commission=d["exit_commission"],
        exit_reason=ExitReason(d["exit_reason"]),
    )


def _decision_to_dict(d: DecisionRecord) -> Dict[str, Any]:
    return {
        "time": d.time.isoformat(),
        "bar_index": d.bar_index,
        "action": d.action.value,
        "confidence": d.confidence,
        "reasoning": d.reasoning,
        "outcome": d.outcome,
    }


def _decision_from_dict(d: Dict[str, Any]) -> DecisionRecord:
    return DecisionRecord(
        time=datetime.fromisoformat(d["time"]),
        bar_index=d["bar_index"],
        action=OracleAction(d["action"]),
        confidence=d["confidence"],
        reasoning=d["reasoning"],
        outcome=d["outcome"],
    )


def build_report(
    config: BacktestConfig,
    final_capital: float,
    trades: Sequence[Trade],
    tracker: EquityTracker,
    decisions: Sequence[DecisionRecord] = (),
    bars_processed: int = 0,
    cancelled: bool = False,
    started_at: Optional[datetime] = None,
    finished_at: Optional[datetime] = None,
    error_stats: Optional[Dict[str, int]] = None,
) -> Report:
    """Assemble the Report from the run's final state."""
    trades: List[Trade] = list(trades)
    m = compute_metrics(trades, config.initial_capital, final_capital)
    return Report(
        config=config,
        initial_capital=config.initial_capital,
        final_capital=final_capital,
        total_return=m.total_return,
        total_return_percent=m.total_return_pct,
        total_trades=m.total_trades,
        wins=m.winning_trades,
        losses=m.losing_trades,
        win_rate=m.win_rate,
        average_win=m.avg_win,
        average_loss=m.avg_loss,
        profit_factor=m.profit_factor,
        expectancy=m.expectancy,
        max_drawdown=tracker.max_drawdown,
        max_drawdown_percent=tracker.max_drawdown_percent,
        sharpe_ratio=m.sharpe_ratio,
        sortino_ratio=m.sortino_ratio,
        trades=tuple(trades),
        equity_curve=tuple(tracker.equity_curve),
        drawdown_curve=tuple(tracker.drawdown_curve),
        decisions=tuple(decisions),
        bars_processed=bars_processed,
        cancelled=cancelled,
        started_at=started_at,
        finished_at=finished_at,
        error_stats=dict(error_stats or {}),
    )
