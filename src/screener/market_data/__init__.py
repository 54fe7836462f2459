"""Market data layer -- batched candle/ticker polling feeding the signal engine."""

from screener.market_data.scanner import SignalScanner

__all__ = ["SignalScanner"]
