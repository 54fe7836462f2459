"""Pump/dump zone classification from the recent RSI range."""

from __future__ import annotations

from collections.abc import Sequence

from screener.signals.models import PumpDirection, RSIRangeSummary

NO_DATA = "NO DATA"
NO_STRONG_SIGNAL = "NO STRONG SIGNAL"

#: Zone labels in display order, used by dashboard filter chips.
ZONE_LABELS = (
    "MAX ZONE PUMP",
    "MAX ZONE DUMP",
    "BALANCE ZONE PUMP",
    "BALANCE ZONE DUMP",
    "LOWEST ZONE PUMP",
    "LOWEST ZONE DUMP",
)

# (name, inclusive lower bound, inclusive upper bound), highest priority first.
# Strengths in (10, 21) and (26, 30) are deliberately unclassified.
_ZONES: tuple[tuple[str, float, float], ...] = (
    ("MAX ZONE", 30.0, float("inf")),
    ("BALANCE ZONE", 21.0, 26.0),
    ("LOWEST ZONE", 1.0, 10.0),
)


def get_recent_rsi_diff(
    rsi: Sequence[float | None], lookback: int = 14
) -> RSIRangeSummary | None:
    """Summarize the RSI range over the last ``lookback`` readings.

    Args:
        rsi: RSI series, oldest first. Warm-up entries are None and skipped.
        lookback: Number of trailing readings to consider.

    Returns:
        RSIRangeSummary, or None when the series is shorter than ``lookback``
        or the window holds no readings.
    """
    if lookback <= 0 or len(rsi) < lookback:
        return None

    window = [v for v in rsi[-lookback:] if v is not None]
    if not window:
        return None

    recent_high = max(window)
    recent_low = min(window)
    start, end = window[0], window[-1]
    if end > start:
        direction = PumpDirection.PUMP
    elif end < start:
        direction = PumpDirection.DUMP
    else:
        direction = PumpDirection.NEUTRAL

    return RSIRangeSummary(
        recent_high=recent_high,
        recent_low=recent_low,
        pump_strength=recent_high - recent_low,
        # Numerically identical to pump_strength; kept as its own field so an
        # asymmetric definition can replace it without touching callers.
        dump_strength=abs(recent_low - recent_high),
        direction=direction,
        strength=abs(end - start),
    )


def classify_zone(summary: RSIRangeSummary | None) -> str:
    """Map an RSI range summary to a zone label.

    Zones are checked in priority order MAX > BALANCE > LOWEST; each needs a
    pump or dump direction and takes the matching strength.
    """
    if summary is None:
        return NO_DATA

    if summary.direction == PumpDirection.PUMP:
        value, suffix = summary.pump_strength, "PUMP"
    elif summary.direction == PumpDirection.DUMP:
        value, suffix = summary.dump_strength, "DUMP"
    else:
        return NO_STRONG_SIGNAL

    for name, low, high in _ZONES:
        if low <= value <= high:
            return f"{name} {suffix}"
    return NO_STRONG_SIGNAL


def get_signal(rsi: Sequence[float | None], lookback: int) -> str:
    """Zone label for an RSI series; ``NO DATA`` when it cannot be summarized."""
    return classify_zone(get_recent_rsi_diff(rsi, lookback))
