"""Session-level pattern detectors: breakouts, tested levels, top/bottom
patterns, engulfing candles, and candle/volume helpers.

Inputs are plain floats and Candle sequences already resolved to the
relevant session. Missing extremes (None) make every dependent flag False.
"""

from __future__ import annotations

from collections.abc import Sequence

from screener.models import Candle, VolumeColor
from screener.signals.indicators import touched_level
from screener.signals.models import (
    BottomPatterns,
    BreakoutFlags,
    EngulfingFlags,
    TopPatterns,
)

#: Relative distance between the latest and the previous session extreme
#: that still counts as a double top/bottom.
DOUBLE_PATTERN_TOLERANCE = 0.01


# ---------------------------------------------------------------------------
# Breakouts and tested levels
# ---------------------------------------------------------------------------


def detect_breakouts(
    today_high: float | None,
    today_low: float | None,
    prev_high: float | None,
    prev_low: float | None,
) -> BreakoutFlags:
    """Compare the current session's extremes with the previous session's.

    Breakout failure is the conjunction of the failed-high and failed-low
    checks: the session stayed inside the previous session's range on both
    sides.
    """
    if None in (today_high, today_low, prev_high, prev_low):
        return BreakoutFlags(False, False, False, False, False)

    failed_bullish = today_high <= prev_high
    failed_bearish = today_low >= prev_low
    return BreakoutFlags(
        bullish=today_high > prev_high,
        bearish=today_low < prev_low,
        failed_bullish=failed_bullish,
        failed_bearish=failed_bearish,
        failure=failed_bullish and failed_bearish,
    )


def get_test_threshold(price: float) -> float:
    """Absolute tolerance for a level test, tiered by price magnitude."""
    if price > 10000:
        return price * 0.00005
    if price > 1000:
        return price * 0.0001
    if price > 1:
        return price * 0.001
    return price * 0.01


def detect_tested_prev_high(prev_high: float | None, today_high: float | None) -> bool:
    """True when today's high came within the threshold of the previous high without exceeding it."""
    if prev_high is None or today_high is None:
        return False
    return today_high <= prev_high and prev_high - today_high <= get_test_threshold(prev_high)


def detect_tested_prev_low(prev_low: float | None, today_low: float | None) -> bool:
    """True when today's low came within the threshold of the previous low without breaking it."""
    if prev_low is None or today_low is None:
        return False
    return today_low >= prev_low and today_low - prev_low <= get_test_threshold(prev_low)


# ---------------------------------------------------------------------------
# Multi-session top/bottom patterns
# ---------------------------------------------------------------------------


def detect_top_patterns(highs: Sequence[float | None]) -> TopPatterns:
    """Detect double top, descending top and double-top failure.

    ``highs`` are per-session highs, oldest first; the last entry is the
    active session. Empty sessions (None) are ignored.
    """
    recent = highs[-1] if highs else None
    previous = [h for h in highs[:-1] if h is not None and h > 0]
    if not recent or not previous:
        return TopPatterns(False, False, False)

    last_top = previous[-1]
    prior_max = max(previous)
    tail = previous[-3:]
    return TopPatterns(
        double_top=abs(recent - last_top) / last_top < DOUBLE_PATTERN_TOLERANCE
        and recent < prior_max,
        descending_top=all(tail[i] < tail[i - 1] for i in range(1, len(tail))),
        double_top_failure=recent > prior_max,
    )


def detect_bottom_patterns(lows: Sequence[float | None]) -> BottomPatterns:
    """Mirror of detect_top_patterns over per-session lows."""
    recent = lows[-1] if lows else None
    previous = [low for low in lows[:-1] if low is not None]
    if not recent or not previous or previous[-1] == 0:
        return BottomPatterns(False, False, False)

    last_bottom = previous[-1]
    prior_min = min(previous)
    tail = previous[-3:]
    return BottomPatterns(
        double_bottom=abs(recent - last_bottom) / last_bottom < DOUBLE_PATTERN_TOLERANCE
        and recent > prior_min,
        ascending_bottom=all(tail[i] > tail[i - 1] for i in range(1, len(tail))),
        double_bottom_failure=recent < prior_min,
    )


# ---------------------------------------------------------------------------
# Engulfing
# ---------------------------------------------------------------------------


def _is_green(c: Candle) -> bool:
    return c.close > c.open


def _is_red(c: Candle) -> bool:
    return c.close < c.open


def detect_engulfing(session_candles: Sequence[Candle]) -> EngulfingFlags:
    """Scan the current session for confirmed engulfing patterns.

    A bullish engulfing needs a red candle, then a green candle whose body
    covers the red body, then a candle closing above the engulfing close. The
    engulfing candle must come after the candle that set the session high.
    Bearish is the mirror, anchored on the session-low candle.
    """
    if len(session_candles) < 3:
        return EngulfingFlags(False, False)

    high_index = max(range(len(session_candles)), key=lambda i: session_candles[i].high)
    low_index = min(range(len(session_candles)), key=lambda i: session_candles[i].low)

    bullish = False
    bearish = False
    for i in range(1, len(session_candles) - 1):
        prev, curr, nxt = session_candles[i - 1], session_candles[i], session_candles[i + 1]

        if (
            not bullish
            and i > high_index
            and _is_red(prev)
            and _is_green(curr)
            and curr.open <= prev.close
            and curr.close >= prev.open
            and nxt.close > curr.close
        ):
            bullish = True

        if (
            not bearish
            and i > low_index
            and _is_green(prev)
            and _is_red(curr)
            and curr.open >= prev.close
            and curr.close <= prev.open
            and nxt.close < curr.close
        ):
            bearish = True

    return EngulfingFlags(bullish=bullish, bearish=bearish)


# ---------------------------------------------------------------------------
# Candle and volume helpers
# ---------------------------------------------------------------------------


def volume_color(candle: Candle) -> VolumeColor:
    if _is_green(candle):
        return VolumeColor.GREEN
    if _is_red(candle):
        return VolumeColor.RED
    return VolumeColor.NEUTRAL


def highest_volume_color(candles: Sequence[Candle]) -> VolumeColor | None:
    """Colour of the highest-volume candle, or None for an empty window."""
    if not candles:
        return None
    return volume_color(max(candles, key=lambda c: c.volume))


def is_volume_spike(
    volumes: Sequence[float], lookback: int = 20, multiplier: float = 2.0
) -> bool:
    """True when the latest volume exceeds ``multiplier`` times the prior ``lookback`` average."""
    if lookback <= 0 or len(volumes) < lookback + 1:
        return False
    window = volumes[-lookback - 1:-1]
    average = sum(window) / lookback
    return average > 0 and volumes[-1] > average * multiplier


def previous_candle_color(candles: Sequence[Candle]) -> VolumeColor | None:
    """Colour of the last closed candle (second to last in the sequence)."""
    if len(candles) < 2:
        return None
    return volume_color(candles[-2])


def candle_touches(candle: Candle, level: float | None, margin: float = 0.0) -> bool:
    """True when the candle's range reaches ``level`` (optionally widened by ``margin``)."""
    if level is None:
        return False
    return candle.low * (1 - margin) <= level <= candle.high * (1 + margin)


def is_ema_bounce(candle: Candle, ema: float | None, margin: float = 0.0015) -> bool:
    """The candle dipped to the EMA and closed above it."""
    if ema is None:
        return False
    touched = candle_touches(candle, ema) or touched_level(candle.low, ema, margin)
    return touched and candle.close > ema


def touched_level_in_window(
    candles: Sequence[Candle], levels: Sequence[float | None]
) -> bool:
    """True when any candle's range contains its aligned level."""
    return any(candle_touches(c, lv) for c, lv in zip(candles, levels))


# ---------------------------------------------------------------------------
# 24h change helpers
# ---------------------------------------------------------------------------


def get_24h_change_percent(current_price: float, price_24h_ago: float) -> float:
    """Change relative to the current price, rounded to two decimals."""
    if current_price == 0:
        return 0.0
    return round((current_price - price_24h_ago) / current_price * 100, 2)


def did_drop_from_peak(
    peak_percent: float, current_percent: float, drop_threshold: float = 5
) -> bool:
    return peak_percent - current_percent >= drop_threshold


def did_recover_from_low(
    low_percent: float, current_percent: float, recovery_threshold: float = 5
) -> bool:
    return current_percent > low_percent and current_percent - low_percent >= recovery_threshold
