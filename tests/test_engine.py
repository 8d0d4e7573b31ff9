"""Backtest engine behaviour on synthetic bar series."""

import asyncio
import time
from dataclasses import replace

import pytest

from arena_trader.backtesting.engine import BacktestEngine
from arena_trader.core.config import BacktestConfig
from arena_trader.core.errors import DataValidationError, ErrorLog
from arena_trader.core.types import ExitReason, OracleAction, Side
from arena_trader.data.klines import bars_to_frame
from arena_trader.oracle.base import Decision, DecisionOracle
from arena_trader.oracle.function import FunctionOracle
from arena_trader.oracle.scripted import ScriptedOracle

from conftest import build_bars

BUY = {"action": "BUY", "confidence": 90, "positionSize": 20, "leverage": 3, "stopLoss": 2, "takeProfit": 4}
SELL = dict(BUY, action="SELL")

CONFIG = BacktestConfig(initial_capital=100.0, commission=0.0004, slippage=0.0005)


def _expected_pnl(close, side_sign):
    """4% take-profit on 20% margin at 3x, exit commission on exit notional."""
    entry = close * (1 + side_sign * 0.0005)
    qty = 20.0 / entry
    notional = qty * 3 * entry
    exit_price = entry * (1 + side_sign * 0.04)
    return 0.04 * notional * 3 - qty * 3 * exit_price * 0.0004


class CountingCancel:
    def __init__(self, after):
        self.after = after
        self.calls = 0

    def is_set(self):
        self.calls += 1
        return self.calls > self.after


def test_long_take_profit_end_to_end(rising_bars):
    oracle = ScriptedOracle({201: BUY})
    report = BacktestEngine(CONFIG, oracle).run(rising_bars)

    assert report.total_trades == 1
    trade = report.trades[0]
    assert trade.side == Side.LONG
    assert trade.exit_reason == ExitReason.TAKE_PROFIT
    assert trade.entry_time == rising_bars[201].time
    assert trade.exit_time == rising_bars[213].time
    assert trade.pnl == pytest.approx(_expected_pnl(301.0, 1), abs=1e-6)
    assert trade.pnl == pytest.approx(7.17504, abs=1e-6)
    assert report.final_capital == pytest.approx(100.0 - 0.024 + 7.17504, abs=1e-6)
    assert report.win_rate == 100.0

    assert len(report.equity_curve) == 51
    assert report.equity_curve[0].time == rising_bars[0].time
    assert report.equity_curve[0].equity == 100.0
    assert report.bars_processed == 50
    assert not report.cancelled

    seen = [s.metadata.wakeup_count for s in oracle.seen]
    assert 200 in seen and 201 in seen
    # flat again on the exit bar
    assert 213 in seen
    assert not any(202 <= w <= 212 for w in seen)


def test_short_take_profit_end_to_end(make_bars):
    bars = make_bars([400.0 - i for i in range(250)])
    report = BacktestEngine(CONFIG, ScriptedOracle({201: SELL})).run(bars)
    assert report.total_trades == 1
    trade = report.trades[0]
    assert trade.side == Side.SHORT
    assert trade.exit_reason == ExitReason.TAKE_PROFIT
    assert trade.exit_time == bars[209].time
    assert trade.pnl == pytest.approx(_expected_pnl(199.0, -1), abs=1e-6)


def test_snapshot_uses_only_current_and_past_bars(rising_bars):
    oracle = ScriptedOracle()
    BacktestEngine(CONFIG, oracle).run(rising_bars)
    for snap in oracle.seen:
        bar = rising_bars[snap.metadata.wakeup_count]
        assert snap.price == bar.close
        assert snap.metadata.timestamp == bar.time

    # same snapshot at bar 220 when everything after it is dropped
    truncated = ScriptedOracle()
    BacktestEngine(CONFIG, truncated).run(rising_bars[:221])
    assert truncated.seen[-1].metadata.wakeup_count == 220
    assert truncated.seen[-1] == oracle.seen[20]


def test_oracle_exception_degrades_to_hold(rising_bars):
    def explode(snapshot):
        raise RuntimeError("boom")

    log = ErrorLog()
    report = BacktestEngine(CONFIG, FunctionOracle(explode), error_log=log).run(rising_bars)
    assert report.total_trades == 0
    assert report.final_capital == 100.0
    assert all(d.outcome == "oracle_error" for d in report.decisions)
    assert all(d.action == OracleAction.HOLD for d in report.decisions)
    assert report.decisions[0].reasoning.startswith("Oracle error")
    assert report.error_stats == {"UNKNOWN": 50}
    assert len(log) == 50


def test_oracle_timeout(make_bars):
    async def slow(snapshot):
        await asyncio.sleep(1.0)
        return BUY

    cfg = replace(CONFIG, warmup_bars=20, lookback_bars=20, oracle_timeout_s=0.01)
    report = BacktestEngine(cfg, slow).run(make_bars([100.0 + i for i in range(23)]))
    assert report.total_trades == 0
    assert [d.outcome for d in report.decisions] == ["oracle_error"] * 3
    assert report.error_stats == {"ORACLE_TIMEOUT": 3}


def test_sync_oracle_timeout(make_bars):
    def stuck(snapshot):
        time.sleep(0.2)
        return BUY

    cfg = replace(CONFIG, warmup_bars=20, lookback_bars=20, oracle_timeout_s=0.01)
    report = BacktestEngine(cfg, stuck).run(make_bars([100.0 + i for i in range(23)]))
    assert report.total_trades == 0
    assert [d.outcome for d in report.decisions] == ["oracle_error"] * 3
    assert report.error_stats == {"ORACLE_TIMEOUT": 3}


def test_non_decision_result_is_invalid_response(rising_bars):
    class Sloppy(DecisionOracle):
        name = "sloppy"

        async def decide(self, snapshot):
            return {"action": "BUY", "confidence": 99}

    report = BacktestEngine(CONFIG, Sloppy()).run(rising_bars)
    assert report.total_trades == 0
    assert report.error_stats == {"ORACLE_INVALID_RESPONSE": 50}


def test_decision_from_subclass_is_clamped(rising_bars):
    class Eager(DecisionOracle):
        name = "eager"

        async def decide(self, snapshot):
            if snapshot.metadata.wakeup_count == 201:
                return Decision(OracleAction.BUY, 250.0, "all in", leverage=100.0)
            return Decision.hold("wait")

    report = BacktestEngine(CONFIG, Eager()).run(rising_bars)
    assert report.decisions[1].confidence == 100
    assert report.decisions[1].outcome == "opened"
    assert report.total_trades == 1
    assert report.trades[0].leverage == 30


def test_malformed_output_is_hold(rising_bars):
    report = BacktestEngine(CONFIG, lambda snapshot: "buy everything").run(rising_bars)
    assert report.total_trades == 0
    assert {d.outcome for d in report.decisions} == {"hold"}
    assert report.error_stats == {}


def test_below_confidence_is_skipped(rising_bars):
    report = BacktestEngine(CONFIG, ScriptedOracle({201: dict(BUY, confidence=50)})).run(rising_bars)
    assert report.total_trades == 0
    assert report.decisions[1].bar_index == 201
    assert report.decisions[1].outcome == "below_confidence"


def test_risk_rejection_recorded(rising_bars):
    tiny = dict(BUY, positionSize=1, leverage=1)
    report = BacktestEngine(CONFIG, ScriptedOracle({201: tiny})).run(rising_bars)
    assert report.total_trades == 0
    assert report.decisions[1].outcome.startswith("risk_rejected: notional")
    assert report.error_stats == {"RISK_REJECTED": 1}
    assert report.final_capital == 100.0


def test_full_position_size_opens(rising_bars):
    report = BacktestEngine(CONFIG, ScriptedOracle({201: dict(BUY, positionSize=100)})).run(rising_bars)
    assert report.decisions[1].outcome == "opened"
    assert report.total_trades == 1
    assert report.trades[0].quantity == pytest.approx(100.0 / (301.0 * 1.0005))


def test_stop_checked_before_target_on_same_bar(rising_bars):
    bars = list(rising_bars)
    wide = bars[202]
    bars[202] = replace(wide, high=400.0, low=1.0)
    report = BacktestEngine(CONFIG, ScriptedOracle({201: BUY})).run(bars)
    trade = report.trades[0]
    assert trade.exit_reason == ExitReason.STOP_LOSS
    assert trade.exit_price == pytest.approx(trade.entry_price * 0.98)
    assert trade.exit_time == bars[202].time
    assert trade.pnl < 0


def test_cancellation_force_closes(rising_bars):
    cancel = CountingCancel(after=5)
    report = BacktestEngine(CONFIG, ScriptedOracle({200: BUY})).run(rising_bars, cancel=cancel)
    assert report.cancelled
    assert report.bars_processed == 5
    assert report.total_trades == 1
    trade = report.trades[0]
    assert trade.exit_reason == ExitReason.FORCED_CLOSE
    assert trade.exit_time == rising_bars[204].time
    assert trade.exit_price == pytest.approx(304.0 * (1 - 0.0005))


def test_open_position_force_closed_at_end(rising_bars):
    report = BacktestEngine(CONFIG, ScriptedOracle({245: BUY})).run(rising_bars)
    assert report.total_trades == 1
    assert report.trades[0].exit_reason == ExitReason.FORCED_CLOSE
    assert report.trades[0].exit_time == rising_bars[-1].time
    assert report.equity_curve[-1].equity == pytest.approx(report.final_capital)


def test_position_opened_on_last_bar_is_unwound(rising_bars):
    report = BacktestEngine(CONFIG, ScriptedOracle({249: BUY})).run(rising_bars)
    assert report.total_trades == 0
    assert report.decisions[-1].outcome == "opened"
    assert report.final_capital == pytest.approx(100.0)
    assert report.equity_curve[-1].equity == pytest.approx(100.0)
    assert len(report.equity_curve) == 51


def test_trades_never_overlap(rising_bars):
    script = {i: (BUY if i % 2 else SELL) for i in range(200, 250)}
    report = BacktestEngine(CONFIG, ScriptedOracle(script)).run(rising_bars)
    assert report.total_trades > 1
    for t in report.trades:
        assert t.exit_time > t.entry_time
    for prev, nxt in zip(report.trades, report.trades[1:]):
        assert nxt.entry_time >= prev.exit_time


def test_dataframe_input_matches_bar_list(rising_bars):
    from_list = BacktestEngine(CONFIG, ScriptedOracle({201: BUY})).run(rising_bars)
    from_frame = BacktestEngine(CONFIG, ScriptedOracle({201: BUY})).run(bars_to_frame(rising_bars))
    assert from_frame.total_trades == 1
    assert from_frame.final_capital == pytest.approx(from_list.final_capital)
    assert from_frame.trades[0].entry_time == from_list.trades[0].entry_time


def test_engine_reusable_between_runs(rising_bars):
    engine = BacktestEngine(CONFIG, ScriptedOracle({201: BUY}))
    first = engine.run(rising_bars)
    second = engine.run(rising_bars)
    assert second.final_capital == pytest.approx(first.final_capital)
    assert second.total_trades == 1


def test_error_stats_do_not_leak_between_runs(rising_bars):
    def explode(snapshot):
        raise RuntimeError("boom")

    engine = BacktestEngine(CONFIG, explode)
    first = engine.run(rising_bars)
    second = engine.run(rising_bars)
    assert first.error_stats == {"UNKNOWN": 50}
    assert second.error_stats == first.error_stats
    assert len(engine.error_log) == 50


def test_run_async(rising_bars):
    engine = BacktestEngine(CONFIG, ScriptedOracle({201: BUY}))
    report = asyncio.run(engine.run_async(rising_bars))
    assert report.total_trades == 1


@pytest.mark.parametrize("mutate", [
    lambda bars: [],
    lambda bars: bars[:200],
    lambda bars: bars[:5] + [replace(bars[5], high=1.0, low=2.0)] + bars[6:],
    lambda bars: bars[:5] + [replace(bars[5], time=bars[4].time)] + bars[6:],
    lambda bars: bars[:5] + [replace(bars[5], close=float("nan"))] + bars[6:],
    lambda bars: list(reversed(bars)),
])
def test_invalid_series_rejected(rising_bars, mutate):
    oracle = ScriptedOracle()
    with pytest.raises(DataValidationError):
        BacktestEngine(CONFIG, oracle).run(mutate(list(rising_bars)))
    assert oracle.seen == []
