"""
Normalize whatever an oracle returns into a clamped Decision.
Malformed output never raises: it degrades to HOLD with confidence 0.
"""

from __future__ import annotations
import json
import logging
import math
import re
from typing import Any, Mapping, Optional, Union

from arena_trader.core.types import OracleAction
from arena_trader.oracle.base import (
    DEFAULT_LEVERAGE,
    DEFAULT_POSITION_SIZE,
    DEFAULT_STOP_LOSS,
    DEFAULT_TAKE_PROFIT,
    Decision,
)

logger = logging.getLogger("arena_trader.oracle.parsing")

CONFIDENCE_RANGE = (0.0, 100.0)
POSITION_SIZE_RANGE = (1.0, 100.0)
LEVERAGE_RANGE = (1.0, 30.0)
STOP_LOSS_RANGE = (1.0, 10.0)
TAKE_PROFIT_RANGE = (2.0, 20.0)

_ACTION_SYNONYMS = {
    "BUY": OracleAction.BUY,
    "LONG": OracleAction.BUY,
    "OPEN_LONG": OracleAction.BUY,
    "SELL": OracleAction.SELL,
    "SHORT": OracleAction.SELL,
    "OPEN_SHORT": OracleAction.SELL,
    "CLOSE": OracleAction.CLOSE,
    "EXIT": OracleAction.CLOSE,
    "CLOSE_POSITION": OracleAction.CLOSE,
    "HOLD": OracleAction.HOLD,
}

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def clamp(value: float, bounds: tuple[float, float]) -> float:
    low, high = bounds
    return max(low, min(high, value))


def normalize_action(action: Any) -> OracleAction:
    if isinstance(action, OracleAction):
        return action
    key = str(action).strip().upper()
    return _ACTION_SYNONYMS.get(key, OracleAction.HOLD)


def _number(value: Any) -> Optional[float]:
    """Finite real number or None. Booleans and strings are not numbers."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    value = float(value)
    if not math.isfinite(value):
        return None
    return value


def _pick(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in raw:
            return raw[key]
    return None


def _optional_param(raw: Mapping[str, Any], keys: tuple[str, ...], default: float, bounds: tuple[float, float]) -> float:
    value = _number(_pick(raw, *keys))
    # missing or zero falls back to the default, as the vendors omit unused fields
    if value is None or value == 0:
        return default
    return clamp(value, bounds)


def parse_decision(raw: Union[Decision, Mapping[str, Any], None]) -> Decision:
    """
    Validate and clamp an oracle response. Accepts a Decision or a mapping
    with camelCase or snake_case keys.
    """
    if isinstance(raw, Decision):
        raw = raw.to_dict()
    if not isinstance(raw, Mapping):
        return Decision.hold(f"Failed to parse oracle response: expected object, got {type(raw).__name__}")

    action = raw.get("action")
    if action is None or "confidence" not in raw:
        return Decision.hold("Failed to parse oracle response: missing required fields (action, confidence)")
    confidence = _number(raw.get("confidence"))
    if confidence is None:
        return Decision.hold(f"Failed to parse oracle response: non-numeric confidence {raw.get('confidence')!r}")

    reasoning = raw.get("reasoning")
    return Decision(
        action=normalize_action(action),
        confidence=clamp(confidence, CONFIDENCE_RANGE),
        reasoning=str(reasoning) if reasoning else "No reasoning provided",
        position_size=_optional_param(raw, ("positionSize", "position_size"), DEFAULT_POSITION_SIZE, POSITION_SIZE_RANGE),
        leverage=_optional_param(raw, ("leverage",), DEFAULT_LEVERAGE, LEVERAGE_RANGE),
        stop_loss=_optional_param(raw, ("stopLoss", "stop_loss"), DEFAULT_STOP_LOSS, STOP_LOSS_RANGE),
        take_profit=_optional_param(raw, ("takeProfit", "take_profit"), DEFAULT_TAKE_PROFIT, TAKE_PROFIT_RANGE),
    )


def parse_decision_text(content: str) -> Decision:
    """Extract the JSON object from free-form model output and parse it."""
    match = _JSON_OBJECT.search(content or "")
    if not match:
        return Decision.hold("Failed to parse oracle response: no JSON found")
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        logger.debug("Invalid JSON in oracle response: %s", e)
        return Decision.hold(f"Failed to parse oracle response: {e}")
    return parse_decision(data)
