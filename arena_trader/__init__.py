"""AI-oracle futures backtester: indicators, oracles, fill simulation, reports."""

__version__ = "0.1.0"
