"""Lot size helpers from exchange info. A zero step means no rounding."""

from __future__ import annotations
import math
from typing import Optional


def parse_symbol_filters(symbol_info: Optional[dict]) -> tuple[float, float]:
    """
    Extract (min_qty, lot_step) from a Binance symbol's LOT_SIZE filter.
    Returns (0.0, 0.0), i.e. rounding disabled, if symbol_info is None.
    """
    min_qty = 0.0
    lot_step = 0.0
    if not symbol_info:
        return min_qty, lot_step
    for f in symbol_info.get("filters", []):
        if f.get("filterType") == "LOT_SIZE":
            min_qty = float(f.get("minQty", min_qty))
            lot_step = float(f.get("stepSize", lot_step))
    return min_qty, lot_step


def round_quantity(qty: float, min_qty: float, step_size: float) -> float:
    """Round down to step size; return 0 if below min_qty."""
    if qty <= 0:
        return 0.0
    rounded = qty
    if step_size > 0:
        # tolerate representation error such as 0.3 / 0.1 == 2.9999999999999996
        rounded = math.floor(qty / step_size + 1e-9) * step_size
        rounded = round(rounded, 12)
    if rounded < min_qty or rounded <= 0:
        return 0.0
    return rounded
