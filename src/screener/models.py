"""Shared market data models for the signal screener.

Prices and volumes are floats: the screener derives indicators from them and
never settles amounts, so Decimal precision buys nothing here.
"""

from dataclasses import dataclass, replace
from enum import Enum

from screener.exceptions import UnsupportedTimeframeError


class Timeframe(str, Enum):
    """Candle timeframes supported by the screener."""

    M15 = "15m"
    H4 = "4h"
    D1 = "1d"

    @classmethod
    def parse(cls, value: "str | Timeframe") -> "Timeframe":
        """Return the Timeframe for ``value``, raising UnsupportedTimeframeError otherwise."""
        try:
            return cls(value)
        except ValueError as e:
            raise UnsupportedTimeframeError(f"Unsupported timeframe: {value!r}") from e

    @property
    def bucket_ms(self) -> int:
        """Length of one candle in milliseconds."""
        return _BUCKET_MS[self]


_BUCKET_MS = {
    Timeframe.M15: 15 * 60 * 1000,
    Timeframe.H4: 4 * 60 * 60 * 1000,
    Timeframe.D1: 24 * 60 * 60 * 1000,
}


class VolumeColor(str, Enum):
    """Candle body colour used to tag volume bars."""

    GREEN = "green"
    RED = "red"
    NEUTRAL = "neutral"


@dataclass(frozen=True)
class Candle:
    """One OHLCV candle. Sequences are ordered by ascending timestamp."""

    timestamp_ms: int
    open: float
    high: float
    low: float
    close: float
    volume: float
    rsi: float | None = None
    volume_color: VolumeColor | None = None

    def with_derived(
        self, rsi: float | None, volume_color: VolumeColor
    ) -> "Candle":
        """Return a copy carrying the per-analysis derived fields."""
        return replace(self, rsi=rsi, volume_color=volume_color)


@dataclass(frozen=True)
class Ticker24h:
    """24-hour rolling ticker snapshot for a single symbol."""

    symbol: str
    last_price: float
    open_price: float
    price_change_percent: float
