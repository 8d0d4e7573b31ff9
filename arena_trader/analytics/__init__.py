from arena_trader.analytics.equity import EquityTracker
from arena_trader.analytics.metrics import PerformanceMetrics, compute_metrics
from arena_trader.analytics.render import (
    format_console,
    format_markdown,
    from_json,
    performance_rating,
    to_json,
)
from arena_trader.analytics.report import Report, build_report

__all__ = [
    "EquityTracker",
    "PerformanceMetrics",
    "compute_metrics",
    "format_console",
    "format_markdown",
    "from_json",
    "performance_rating",
    "to_json",
    "Report",
    "build_report",
]
