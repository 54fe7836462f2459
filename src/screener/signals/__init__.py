"""Indicator and signal computation.

Pure, stateless transformations over OHLCV candle windows: EMA and RSI
primitives, session resolution, trend classification, pattern and divergence
detectors, composite trade setups, the pump/dump zone classifier, and the
SignalEngine that assembles them into one SymbolAnalysis per symbol.
"""

from screener.signals.engine import SignalEngine, SymbolAnalysis
from screener.signals.indicators import calculate_ema, calculate_rsi
from screener.signals.models import NoSignal, TradeSignal, TrendDirection, TrendResult
from screener.signals.sessions import SessionWindow, get_sessions
from screener.signals.trend import get_main_trend
from screener.signals.zones import classify_zone, get_recent_rsi_diff

__all__ = [
    "NoSignal",
    "SessionWindow",
    "SignalEngine",
    "SymbolAnalysis",
    "TradeSignal",
    "TrendDirection",
    "TrendResult",
    "calculate_ema",
    "calculate_rsi",
    "classify_zone",
    "get_main_trend",
    "get_recent_rsi_diff",
    "get_sessions",
]
