from arena_trader.risk.manager import RiskManager, RiskResult

__all__ = ["RiskManager", "RiskResult"]
