from arena_trader.backtesting.benchmark import BenchmarkEntry, format_leaderboard, run_benchmark
from arena_trader.backtesting.engine import BacktestEngine
from arena_trader.backtesting.fills import FillSimulator
from arena_trader.backtesting.position import InvalidTransition, PositionState, PositionStateMachine

__all__ = [
    "BenchmarkEntry",
    "format_leaderboard",
    "run_benchmark",
    "BacktestEngine",
    "FillSimulator",
    "InvalidTransition",
    "PositionState",
    "PositionStateMachine",
]
