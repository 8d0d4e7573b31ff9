"""Decision oracles: contract, parsing, LLM vendors, rule-based and scripted."""

from arena_trader.oracle.base import (
    AccountSnapshot,
    Decision,
    DecisionOracle,
    IndicatorSnapshot,
    MarketSnapshot,
    PerformanceSnapshot,
    SnapshotMetadata,
)
from arena_trader.oracle.function import FunctionOracle, as_oracle
from arena_trader.oracle.llm import (
    AnthropicAdapter,
    DeepSeekAdapter,
    LLMOracle,
    OpenAIAdapter,
    VendorAdapter,
    adapter_for,
    build_llm_oracle,
)
from arena_trader.oracle.parsing import normalize_action, parse_decision, parse_decision_text
from arena_trader.oracle.prompts import PromptBuilder
from arena_trader.oracle.rule_based import TrendRsiOracle
from arena_trader.oracle.scripted import ScriptedOracle

__all__ = [
    "AccountSnapshot",
    "Decision",
    "DecisionOracle",
    "IndicatorSnapshot",
    "MarketSnapshot",
    "PerformanceSnapshot",
    "SnapshotMetadata",
    "FunctionOracle",
    "as_oracle",
    "AnthropicAdapter",
    "DeepSeekAdapter",
    "LLMOracle",
    "OpenAIAdapter",
    "VendorAdapter",
    "adapter_for",
    "build_llm_oracle",
    "normalize_action",
    "parse_decision",
    "parse_decision_text",
    "PromptBuilder",
    "TrendRsiOracle",
    "ScriptedOracle",
]
