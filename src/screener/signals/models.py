"""Result types produced by the indicator and signal detectors.

Absence is always explicit: a warm-up entry in an indicator series is None,
an empty session extreme is None, and a composite detector that finds no
setup returns NoSignal carrying the reason it bailed out.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union


class TrendDirection(str, Enum):
    """Main trend classification from the EMA70/EMA200 relationship."""

    BULLISH = "bullish"
    BEARISH = "bearish"


class LevelType(str, Enum):
    """Role of the crossover price relative to the trend."""

    SUPPORT = "support"
    RESISTANCE = "resistance"


class TradeDirection(str, Enum):
    """Direction of a composite trade setup."""

    LONG = "long"
    SHORT = "short"


class DivergenceKind(str, Enum):
    """Price divergence against RSI or volume."""

    BEARISH = "bearish"
    BULLISH = "bullish"
    BEARISH_VOLUME = "bearish-volume"
    BULLISH_VOLUME = "bullish-volume"


class PumpDirection(str, Enum):
    """Direction of RSI movement across the zone lookback window."""

    PUMP = "pump"
    DUMP = "dump"
    NEUTRAL = "neutral"


@dataclass(frozen=True)
class TrendResult:
    """Main trend with annotations about the most recent EMA70/EMA200 crossover."""

    trend: TrendDirection
    level_type: LevelType
    crossover_price: float
    breakout: bool | None  # None when no crossover was found
    is_near: bool
    is_doji_after_breakout: bool


@dataclass(frozen=True)
class TradeSignal:
    """A qualifying composite setup with 1R/2R targets."""

    direction: TradeDirection
    entry: float
    stop_loss: float
    tp1: float
    tp2: float

    @property
    def is_signal(self) -> bool:
        return True

    @property
    def risk(self) -> float:
        return abs(self.entry - self.stop_loss)

    def to_dict(self) -> dict:
        return {
            "signal": True,
            "direction": self.direction.value,
            "entry": self.entry,
            "stop_loss": self.stop_loss,
            "tp1": self.tp1,
            "tp2": self.tp2,
        }


@dataclass(frozen=True)
class NoSignal:
    """No qualifying setup. ``reason`` is a short machine-readable tag."""

    reason: str

    @property
    def is_signal(self) -> bool:
        return False

    def to_dict(self) -> dict:
        return {"signal": False, "reason": self.reason}


SignalResult = Union[TradeSignal, NoSignal]


@dataclass(frozen=True)
class Divergence:
    """A detected divergence between two price extremes."""

    kind: DivergenceKind
    prev_price: float
    curr_price: float
    prev_value: float
    curr_value: float

    def to_dict(self) -> dict:
        return {
            "type": self.kind.value,
            "prev_price": self.prev_price,
            "curr_price": self.curr_price,
            "prev_value": self.prev_value,
            "curr_value": self.curr_value,
        }


@dataclass(frozen=True)
class RSIRangeSummary:
    """High/low and direction of RSI over the recent lookback window."""

    recent_high: float
    recent_low: float
    pump_strength: float
    dump_strength: float
    direction: PumpDirection
    strength: float


@dataclass(frozen=True)
class InsideRangeRecord:
    """Whether the fast EMA sat strictly between the two slower EMAs at one candle."""

    candle_index: int
    inside: bool
    fast: float | None
    mid: float | None
    slow: float | None


@dataclass(frozen=True)
class BreakoutFlags:
    """Current session extremes against the previous session's."""

    bullish: bool
    bearish: bool
    failed_bullish: bool
    failed_bearish: bool
    failure: bool


@dataclass(frozen=True)
class TopPatterns:
    """Double-top family over per-session highs."""

    double_top: bool
    descending_top: bool
    double_top_failure: bool


@dataclass(frozen=True)
class BottomPatterns:
    """Double-bottom family over per-session lows."""

    double_bottom: bool
    ascending_bottom: bool
    double_bottom_failure: bool


@dataclass(frozen=True)
class EngulfingFlags:
    """Confirmed engulfing patterns inside the current session."""

    bullish: bool
    bearish: bool
