"""Exchange client layer -- Binance USDT-M futures public data via ccxt."""

from screener.exchange.binance_client import BinanceFuturesClient, parse_ohlcv, parse_ticker

__all__ = ["BinanceFuturesClient", "parse_ohlcv", "parse_ticker"]
