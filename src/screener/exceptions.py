"""Custom exceptions for the signal screener.

The indicator functions never raise on short or degenerate numeric input;
these exceptions belong to the fetch and presentation layers around them.
"""


class ScreenerError(Exception):
    """Base exception for all screener errors."""


class ExchangeDataError(ScreenerError):
    """Raised when exchange data cannot be normalized (missing or non-numeric fields)."""


class UnsupportedTimeframeError(ScreenerError):
    """Raised when a timeframe outside 15m/4h/1d is requested."""
