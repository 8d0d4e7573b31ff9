"""
Backtest engine: replays bars in order, consults the decision oracle while
flat, simulates fills, tracks equity and drawdown. No lookahead: the oracle
at bar i sees only bars up to and including i.
"""

from __future__ import annotations
import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional, Protocol, Sequence, Tuple, Union

import pandas as pd

from arena_trader.analytics.equity import EquityTracker
from arena_trader.analytics.metrics import sharpe_ratio, win_rate
from arena_trader.analytics.report import Report, build_report
from arena_trader.backtesting.fills import FillSimulator
from arena_trader.backtesting.position import PositionStateMachine
from arena_trader.core.config import BacktestConfig
from arena_trader.core.errors import ErrorLog, ErrorType, TradingError
from arena_trader.core.types import Bar, DecisionRecord, ExitReason, Trade
from arena_trader.data.klines import frame_to_bars, validate_bars
from arena_trader.indicators.technical import calculate_all
from arena_trader.oracle.base import (
    AccountSnapshot,
    Decision,
    DecisionOracle,
    IndicatorSnapshot,
    MarketSnapshot,
    PerformanceSnapshot,
    SnapshotMetadata,
)
from arena_trader.oracle.function import as_oracle
from arena_trader.oracle.parsing import parse_decision
from arena_trader.risk.manager import RiskManager

logger = logging.getLogger("arena_trader.backtest")

PROGRESS_EVERY = 100


class CancelSignal(Protocol):
    def is_set(self) -> bool:
        ...


class BacktestEngine:
    """
    One engine instance per run configuration. Each call to run() starts
    from fresh capital and state; the error log and risk manager passed in
    are the run's explicit collaborators.
    """

    def __init__(
        self,
        config: BacktestConfig,
        oracle: DecisionOracle,
        risk_manager: Optional[RiskManager] = None,
        error_log: Optional[ErrorLog] = None,
    ):
        self.config = config
        self.oracle = as_oracle(oracle)
        self.risk_manager = risk_manager or RiskManager(min_notional=config.min_notional)
        self.error_log = error_log if error_log is not None else ErrorLog()
        self.fills = FillSimulator(commission=config.commission, slippage=config.slippage)
        self._reset()

    def _reset(self) -> None:
        self.capital = self.config.initial_capital
        self.positions = PositionStateMachine()
        self.trades: List[Trade] = []
        self.decisions: List[DecisionRecord] = []
        self.tracker = EquityTracker(self.config.initial_capital)
        self._last_action: Optional[str] = None
        self.risk_manager.reset()
        self.error_log.clear()

    def run(self, bars: Union[Sequence[Bar], pd.DataFrame], cancel: Optional[CancelSignal] = None) -> Report:
        """Synchronous wrapper around run_async."""
        return asyncio.run(self.run_async(bars, cancel))

    async def run_async(
        self,
        bars: Union[Sequence[Bar], pd.DataFrame],
        cancel: Optional[CancelSignal] = None,
    ) -> Report:
        """
        Replay `bars` (list of Bar or OHLCV DataFrame). Raises
        DataValidationError before processing anything if the series is
        unusable. `cancel` is polled between bars.
        """
        cfg = self.config
        if isinstance(bars, pd.DataFrame):
            bars = frame_to_bars(bars)
        else:
            bars = list(bars)
        validate_bars(bars, cfg.warmup_bars)

        self._reset()
        started_at = datetime.now(timezone.utc)
        self.tracker.record(bars[0].time, self.capital)
        logger.info(
            "Backtest start: %s | %d bars | capital=%.2f | min_conf=%.0f | oracle=%s",
            cfg.symbol, len(bars), cfg.initial_capital, cfg.min_confidence, self.oracle.name,
        )

        total = len(bars) - cfg.warmup_bars
        last_bar: Optional[Bar] = None
        cancelled = False
        for i in range(cfg.warmup_bars, len(bars)):
            if cancel is not None and cancel.is_set():
                cancelled = True
                logger.info("Backtest cancelled before bar %d", i)
                break
            bar = bars[i]
            if last_bar is not None:
                self._mark(last_bar)

            if self.positions.is_open:
                hit = self.positions.check_exit(bar)
                if hit is not None:
                    reason, level = hit
                    self._close(bar, reason, level)

            if not self.positions.is_open:
                await self._consult(bars, i)

            equity = self._equity(bar.close)
            last_bar = bar

            done = i - cfg.warmup_bars
            if done % PROGRESS_EVERY == 0:
                logger.info(
                    "Progress: %.1f%% | Equity: $%.2f | Trades: %d",
                    done / total * 100, equity, len(self.trades),
                )

        if self.positions.is_open and last_bar is not None:
            if self.positions.position.entry_time < last_bar.time:
                self._close(last_bar, ExitReason.FORCED_CLOSE)
            else:
                self._unwind()
        if last_bar is not None:
            self._mark(last_bar)

        finished_at = datetime.now(timezone.utc)
        bars_processed = len(self.tracker.equity_curve) - 1
        report = build_report(
            config=cfg,
            final_capital=self.capital,
            trades=self.trades,
            tracker=self.tracker,
            decisions=self.decisions,
            bars_processed=bars_processed,
            cancelled=cancelled,
            started_at=started_at,
            finished_at=finished_at,
            error_stats=self.error_log.stats(),
        )
        logger.info(
            "Backtest done in %.2fs: %d trades | return %.2f%% | max DD %.2f%%",
            report.duration_s, report.total_trades, report.total_return_percent, report.max_drawdown_percent,
        )
        return report

    def _mark(self, bar: Bar) -> None:
        """Record the equity point for `bar` once nothing more happens on it."""
        self.tracker.record(bar.time, self._equity(bar.close))

    def _equity(self, price: float) -> float:
        position = self.positions.position
        if position is None:
            return self.capital
        return self.capital + self.fills.unrealized_pnl(position, price)

    def _snapshot(self, bars: Sequence[Bar], i: int) -> MarketSnapshot:
        cfg = self.config
        bar = bars[i]
        window = bars[max(0, i - cfg.lookback_bars + 1): i + 1]
        indicators = calculate_all(window)
        pnl_percents = [t.pnl_percent for t in self.trades]
        total_return = (self.capital - cfg.initial_capital) / cfg.initial_capital * 100
        return MarketSnapshot(
            symbol=cfg.symbol,
            price=bar.close,
            indicators=IndicatorSnapshot.from_indicator_set(indicators),
            account=AccountSnapshot(
                balance=self.capital,
                positions=1 if self.positions.is_open else 0,
                total_value=self._equity(bar.close),
                unrealized_pnl=self._equity(bar.close) - self.capital,
            ),
            performance=PerformanceSnapshot(
                total_return=total_return,
                sharpe_ratio=sharpe_ratio(pnl_percents, periods_per_year=1.0),
                win_rate=win_rate([t.pnl for t in self.trades]),
                total_trades=len(self.trades),
                max_drawdown=self.tracker.max_drawdown_percent,
            ),
            metadata=SnapshotMetadata(
                timestamp=bar.time,
                wakeup_count=i,
                last_action=self._last_action,
                consecutive_losses=self.risk_manager.consecutive_losses,
            ),
        )

    async def _ask_oracle(self, snapshot: MarketSnapshot, i: int) -> Tuple[Decision, bool]:
        """(decision, failed). Any oracle failure degrades to HOLD."""
        timeout = self.config.oracle_timeout_s if self.config.oracle_timeout_s > 0 else None
        try:
            decision = await asyncio.wait_for(self.oracle.decide(snapshot), timeout=timeout)
        except Exception as e:
            err = self.error_log.record(e, context=f"oracle {self.oracle.name} at bar {i}")
            return Decision.hold(f"Oracle error: {err}"), True
        if not isinstance(decision, Decision):
            err = self.error_log.record(
                TradingError(ErrorType.ORACLE_INVALID_RESPONSE, f"expected Decision, got {type(decision).__name__}"),
                context=f"oracle {self.oracle.name} at bar {i}",
            )
            return Decision.hold(f"Oracle error: {err}"), True
        return parse_decision(decision), False

    async def _consult(self, bars: Sequence[Bar], i: int) -> None:
        bar = bars[i]
        decision, failed = await self._ask_oracle(self._snapshot(bars, i), i)
        self._last_action = decision.action.value

        if failed:
            outcome = "oracle_error"
        elif decision.side is None:
            outcome = "hold"
        elif decision.confidence < self.config.min_confidence:
            outcome = "below_confidence"
        else:
            outcome = self._open(bar, decision)

        self.decisions.append(DecisionRecord(
            time=bar.time,
            bar_index=i,
            action=decision.action,
            confidence=decision.confidence,
            reasoning=decision.reasoning,
            outcome=outcome,
        ))

    def _open(self, bar: Bar, decision: Decision) -> str:
        side = decision.side
        entry = self.fills.entry_price(side, bar.close)
        result = self.risk_manager.validate_open(self.capital, entry, decision.position_size, decision.leverage)
        if not result.allowed:
            self.error_log.record(
                TradingError(ErrorType.RISK_REJECTED, result.reason),
                context=f"{decision.action.value} at {bar.time}",
            )
            return f"risk_rejected: {result.reason}"

        position = self.fills.open_position(
            side=side,
            close=bar.close,
            time=bar.time,
            quantity=result.quantity,
            leverage=decision.leverage,
            stop_loss_pct=decision.stop_loss,
            take_profit_pct=decision.take_profit,
        )
        self.positions.open(position)
        self.capital -= position.entry_commission
        logger.info(
            "OPEN %s @ %.4f | lev %gx | qty %.6f | SL %.4f | TP %.4f | conf %.0f",
            side.value, position.entry_price, position.leverage, position.quantity,
            position.stop_loss_price, position.take_profit_price, decision.confidence,
        )
        return "opened"

    def _close(self, bar: Bar, reason: ExitReason, level: float = 0.0) -> Trade:
        position = self.positions.close()
        trade = self.fills.close_position(position, bar.time, reason, bar.close, level)
        self.capital += trade.pnl
        self.risk_manager.record_trade_pnl(trade.pnl)
        self.trades.append(trade)
        logger.info(
            "CLOSE %s @ %.4f | PnL $%.4f (%.2f%%) | %s",
            trade.side.value, trade.exit_price, trade.pnl, trade.pnl_percent, reason.value,
        )
        return trade

    def _unwind(self) -> None:
        """Drop a position opened on the final processed bar; it never traded a bar."""
        position = self.positions.close()
        self.capital += position.entry_commission
        logger.info("Unwound %s opened on the final bar, no trade recorded", position.side.value)
