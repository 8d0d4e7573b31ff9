"""Wrap plain callables as oracles."""

from __future__ import annotations
import asyncio
import inspect
from typing import Any, Awaitable, Callable, Mapping, Union

from arena_trader.oracle.base import Decision, DecisionOracle, MarketSnapshot
from arena_trader.oracle.parsing import parse_decision

RawDecision = Union[Decision, Mapping[str, Any]]
OracleCallable = Callable[[MarketSnapshot], Union[RawDecision, Awaitable[RawDecision]]]


class FunctionOracle(DecisionOracle):
    """
    Adapts a sync or async callable returning a Decision or a mapping.
    Sync callables run in a worker thread so a timeout can abandon them.
    """

    def __init__(self, fn: OracleCallable, name: str = ""):
        self._fn = fn
        self.name = name or getattr(fn, "__name__", "function")

    async def decide(self, snapshot: MarketSnapshot) -> Decision:
        if inspect.iscoroutinefunction(self._fn):
            result = await self._fn(snapshot)
        else:
            result = await asyncio.to_thread(self._fn, snapshot)
            if inspect.isawaitable(result):
                result = await result
        return parse_decision(result)


def as_oracle(obj: Union[DecisionOracle, OracleCallable]) -> DecisionOracle:
    if isinstance(obj, DecisionOracle):
        return obj
    if callable(obj):
        return FunctionOracle(obj)
    raise TypeError(f"Expected DecisionOracle or callable, got {type(obj).__name__}")
