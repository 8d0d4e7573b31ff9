"""Deterministic oracle for tests and replays."""

from __future__ import annotations
from typing import Any, Dict, List, Mapping, Optional, Union

from arena_trader.oracle.base import Decision, DecisionOracle, MarketSnapshot
from arena_trader.oracle.parsing import parse_decision


class ScriptedOracle(DecisionOracle):
    """
    Returns a pre-set decision for given wakeup counts and HOLD otherwise.
    Every snapshot it is shown is kept in `seen` for inspection.
    """

    def __init__(
        self,
        script: Optional[Mapping[int, Union[Decision, Mapping[str, Any]]]] = None,
        name: str = "scripted",
    ):
        self.script: Dict[int, Decision] = {k: parse_decision(v) for k, v in (script or {}).items()}
        self.name = name
        self.seen: List[MarketSnapshot] = []

    async def decide(self, snapshot: MarketSnapshot) -> Decision:
        self.seen.append(snapshot)
        decision = self.script.get(snapshot.metadata.wakeup_count)
        if decision is None:
            return Decision.hold("scripted hold")
        return decision
