"""
Load configuration from config.yaml and .env. API keys only from env.
"""

from __future__ import annotations
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

# Env var holding the API key for each LLM oracle provider
ORACLE_KEY_ENV = {
    "deepseek": "DEEPSEEK_API_KEY",
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}


@dataclass(frozen=True)
class BacktestConfig:
    """Parameters of one backtest run. Echoed verbatim into the Report."""
    symbol: str = "BTCUSDT"
    initial_capital: float = 100.0
    min_confidence: float = 70.0
    commission: float = 0.0004
    slippage: float = 0.0005
    min_notional: float = 5.0
    warmup_bars: int = 200
    lookback_bars: int = 200
    oracle_timeout_s: float = 30.0
    oracle_name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BacktestConfig":
        fields = cls.__dataclass_fields__
        return cls(**{k: v for k, v in data.items() if k in fields})


def _env_path(project_root: Optional[Path] = None) -> Path:
    root = project_root or Path(__file__).resolve().parents[2]
    return root / ".env"


def load_dotenv_if_exists(project_root: Optional[Path] = None) -> None:
    """Load .env from project root if present."""
    path = _env_path(project_root)
    if path.exists():
        load_dotenv(path)


def load_config(config_path: Optional[Path] = None, project_root: Optional[Path] = None) -> "Config":
    """Load config.yaml and overlay with env. Returns Config."""
    load_dotenv_if_exists(project_root)
    root = project_root or Path(__file__).resolve().parents[2]
    path = config_path or root / "config.yaml"
    data: dict[str, Any] = {}
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

    # Env overrides (for secrets and overrides)
    def env(key: str, default: str = "") -> str:
        return os.getenv(key, default).strip()

    def env_bool(key: str, default: bool = False) -> bool:
        return os.getenv(key, str(default)).lower() in ("true", "1", "yes")

    def env_int(key: str, default: int = 0) -> int:
        try:
            return int(os.getenv(key, str(default)))
        except ValueError:
            return default

    def env_float(key: str, default: float = 0.0) -> float:
        try:
            return float(os.getenv(key, str(default)))
        except ValueError:
            return default

    market = data.get("market", {})
    backtest = data.get("backtest", {})
    risk = data.get("risk", {})
    oracle = data.get("oracle", {})
    telegram = data.get("telegram", {})
    logging_cfg = data.get("logging", {})

    provider = env("ORACLE_PROVIDER", oracle.get("provider", "rule")).lower()
    data_file = env("DATA_FILE", backtest.get("data_file") or "")

    return Config(
        binance_api_key=env("BINANCE_API_KEY"),
        binance_api_secret=env("BINANCE_API_SECRET"),
        use_testnet=env_bool("USE_TESTNET", market.get("use_testnet", False)),
        symbol=env("SYMBOL", market.get("symbol", "BTCUSDT")).upper(),
        timeframe=env("TIMEFRAME", market.get("timeframe", "1h")),
        # Backtest
        initial_capital=env_float("INITIAL_CAPITAL", backtest.get("initial_capital", 100.0)),
        min_confidence=env_float("MIN_CONFIDENCE", backtest.get("min_confidence", 70.0)),
        commission=env_float("COMMISSION", backtest.get("commission", 0.0004)),
        slippage=env_float("SLIPPAGE", backtest.get("slippage", 0.0005)),
        warmup_bars=env_int("WARMUP_BARS", backtest.get("warmup_bars", 200)),
        lookback_bars=env_int("LOOKBACK_BARS", backtest.get("lookback_bars", 200)),
        days=env_int("BACKTEST_DAYS", backtest.get("days", 30)),
        data_file=Path(data_file) if data_file else None,
        oracle_timeout_s=env_float("ORACLE_TIMEOUT_S", backtest.get("oracle_timeout_s", 30.0)),
        # Risk
        min_notional=env_float("MIN_NOTIONAL", risk.get("min_notional", 5.0)),
        max_leverage=env_float("MAX_LEVERAGE", risk.get("max_leverage", 30.0)),
        max_position_pct=env_float("MAX_POSITION_PCT", risk.get("max_position_pct", 100.0)),
        min_qty=float(risk.get("min_qty", 0.0)),
        lot_step=float(risk.get("lot_step", 0.0)),
        # Oracle (key from env only)
        oracle_provider=provider,
        oracle_api_key=env(ORACLE_KEY_ENV.get(provider, "ORACLE_API_KEY")),
        oracle_model=env("ORACLE_MODEL", oracle.get("model") or ""),
        oracle_base_url=env("ORACLE_BASE_URL", oracle.get("base_url") or ""),
        oracle_temperature=float(oracle.get("temperature", 0.3)),
        oracle_max_tokens=int(oracle.get("max_tokens", 2000)),
        oracle_requests_per_minute=int(oracle.get("requests_per_minute", 100)),
        oracle_max_retries=int(oracle.get("max_retries", 3)),
        # Telegram
        telegram_bot_token=env("TELEGRAM_BOT_TOKEN", telegram.get("bot_token", "")),
        telegram_chat_id=env("TELEGRAM_CHAT_ID", telegram.get("chat_id", "")),
        # Logging
        log_level=logging_cfg.get("level", "INFO"),
        log_dir=Path(logging_cfg.get("log_dir", "logs")),
        log_file=logging_cfg.get("log_file", "arena_trader.log"),
        report_dir=Path(backtest.get("report_dir", "backtest-reports")),
    )


class Config:
    """Unified configuration. Immutable after load."""

    __slots__ = (
        "binance_api_key", "binance_api_secret", "use_testnet", "symbol", "timeframe",
        "initial_capital", "min_confidence", "commission", "slippage",
        "warmup_bars", "lookback_bars", "days", "data_file", "oracle_timeout_s",
        "min_notional", "max_leverage", "max_position_pct", "min_qty", "lot_step",
        "oracle_provider", "oracle_api_key", "oracle_model", "oracle_base_url",
        "oracle_temperature", "oracle_max_tokens", "oracle_requests_per_minute", "oracle_max_retries",
        "telegram_bot_token", "telegram_chat_id",
        "log_level", "log_dir", "log_file", "report_dir",
    )

    def __init__(
        self,
        binance_api_key: str = "",
        binance_api_secret: str = "",
        use_testnet: bool = False,
        symbol: str = "BTCUSDT",
        timeframe: str = "1h",
        initial_capital: float = 100.0,
        min_confidence: float = 70.0,
        commission: float = 0.0004,
        slippage: float = 0.0005,
        warmup_bars: int = 200,
        lookback_bars: int = 200,
        days: int = 30,
        data_file: Optional[Path] = None,
        oracle_timeout_s: float = 30.0,
        min_notional: float = 5.0,
        max_leverage: float = 30.0,
        max_position_pct: float = 100.0,
        min_qty: float = 0.0,
        lot_step: float = 0.0,
        oracle_provider: str = "rule",
        oracle_api_key: str = "",
        oracle_model: str = "",
        oracle_base_url: str = "",
        oracle_temperature: float = 0.3,
        oracle_max_tokens: int = 2000,
        oracle_requests_per_minute: int = 100,
        oracle_max_retries: int = 3,
        telegram_bot_token: str = "",
        telegram_chat_id: str = "",
        log_level: str = "INFO",
        log_dir: Path = None,
        log_file: str = "arena_trader.log",
        report_dir: Path = None,
    ):
        self.binance_api_key = binance_api_key
        self.binance_api_secret = binance_api_secret
        self.use_testnet = use_testnet
        self.symbol = symbol
        self.timeframe = timeframe
        self.initial_capital = initial_capital
        self.min_confidence = min_confidence
        self.commission = commission
        self.slippage = slippage
        self.warmup_bars = warmup_bars
        self.lookback_bars = lookback_bars
        self.days = days
        self.data_file = Path(data_file) if data_file else None
        self.oracle_timeout_s = oracle_timeout_s
        self.min_notional = min_notional
        self.max_leverage = max_leverage
        self.max_position_pct = max_position_pct
        self.min_qty = min_qty
        self.lot_step = lot_step
        self.oracle_provider = oracle_provider
        self.oracle_api_key = oracle_api_key
        self.oracle_model = oracle_model
        self.oracle_base_url = oracle_base_url
        self.oracle_temperature = oracle_temperature
        self.oracle_max_tokens = oracle_max_tokens
        self.oracle_requests_per_minute = oracle_requests_per_minute
        self.oracle_max_retries = oracle_max_retries
        self.telegram_bot_token = telegram_bot_token
        self.telegram_chat_id = telegram_chat_id
        self.log_level = log_level
        self.log_dir = Path(log_dir) if log_dir else Path("logs")
        self.log_file = log_file
        self.report_dir = Path(report_dir) if report_dir else Path("backtest-reports")

    def backtest_config(self, oracle_name: str = "") -> BacktestConfig:
        return BacktestConfig(
            symbol=self.symbol,
            initial_capital=self.initial_capital,
            min_confidence=self.min_confidence,
            commission=self.commission,
            slippage=self.slippage,
            min_notional=self.min_notional,
            warmup_bars=self.warmup_bars,
            lookback_bars=self.lookback_bars,
            oracle_timeout_s=self.oracle_timeout_s,
            oracle_name=oracle_name or self.oracle_provider,
        )
