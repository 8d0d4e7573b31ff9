from arena_trader.data.binance_klines import BinanceKlineClient
from arena_trader.data.klines import bars_to_frame, frame_to_bars, load_csv, validate_bars

__all__ = ["BinanceKlineClient", "bars_to_frame", "frame_to_bars", "load_csv", "validate_bars"]
