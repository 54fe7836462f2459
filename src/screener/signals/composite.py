"""Composite signal classifiers: trend reversals, spikes and collapses.

Each detector combines the main trend, an EMA14 crossover, a tracked price
extreme and the RSI trajectory into a TradeSignal with 1R/2R targets, or a
NoSignal naming the first guard that failed. All thresholds are fixed
module constants.
"""

from __future__ import annotations

from collections.abc import Sequence

from screener.signals.indicators import (
    is_ascending,
    is_ascending_low_on_ema_touch,
    is_descending,
    is_descending_high_on_ema_touch,
)
from screener.signals.models import (
    NoSignal,
    SignalResult,
    TradeDirection,
    TradeSignal,
    TrendDirection,
)
from screener.signals.trend import get_main_trend

#: RSI midline a setup has to be on the far side of.
RSI_MIDLINE = 50.0

#: Entry offset from the reference price, in the trade direction.
ENTRY_OFFSET = 0.001

#: Candles required before any composite detector runs.
MIN_CANDLES = 10

#: Window for the short RSI trend confirmation.
RSI_TREND_WINDOW = 3

#: Reversals look for the EMA14/EMA70 crossover at least this far back.
REVERSAL_SCAN_OFFSET = 10

#: Spike/collapse crossover scan offset.
SPIKE_SCAN_OFFSET = 4

FloatSeries = Sequence[float | None]


def _gt(a: float | None, b: float | None) -> bool:
    return a is not None and b is not None and a > b


def _lt(a: float | None, b: float | None) -> bool:
    return a is not None and b is not None and a < b


def _find_cross_up(fast: FloatSeries, slow: FloatSeries, start: int) -> int | None:
    """Index right after the most recent upward cross, scanning back from ``start``."""
    for j in range(start, 0, -1):
        if None in (fast[j], slow[j], fast[j + 1], slow[j + 1]):
            continue
        if fast[j] <= slow[j] and fast[j + 1] > slow[j + 1]:
            return j + 1
    return None


def _find_cross_down(fast: FloatSeries, slow: FloatSeries, start: int) -> int | None:
    """Index right after the most recent downward cross, scanning back from ``start``."""
    for j in range(start, 0, -1):
        if None in (fast[j], slow[j], fast[j + 1], slow[j + 1]):
            continue
        if fast[j] >= slow[j] and fast[j + 1] < slow[j + 1]:
            return j + 1
    return None


def _short(entry: float, stop_loss: float) -> SignalResult:
    if stop_loss <= entry:
        return NoSignal("degenerate_risk")
    risk = stop_loss - entry
    return TradeSignal(
        direction=TradeDirection.SHORT,
        entry=entry,
        stop_loss=stop_loss,
        tp1=entry - risk,
        tp2=entry - 2 * risk,
    )


def _long(entry: float, stop_loss: float) -> SignalResult:
    if stop_loss >= entry:
        return NoSignal("degenerate_risk")
    risk = entry - stop_loss
    return TradeSignal(
        direction=TradeDirection.LONG,
        entry=entry,
        stop_loss=stop_loss,
        tp1=entry + risk,
        tp2=entry + 2 * risk,
    )


def _trend(ema70, ema200, closes, opens, highs, lows) -> TrendDirection | None:
    result = get_main_trend(ema70, ema200, closes, opens, highs, lows)
    return result.trend if result is not None else None


def detect_bullish_to_bearish(
    ema14: FloatSeries,
    ema70: FloatSeries,
    ema200: FloatSeries,
    rsi: FloatSeries,
    lows: Sequence[float],
    highs: Sequence[float],
    closes: Sequence[float],
    opens: Sequence[float],
) -> SignalResult:
    """Short setup: a bullish market rolling over after an EMA14 push above EMA70.

    After the crossover, every candle that trades through or closes above
    EMA70 lowers the tracked high. The trigger candle must print a lower high
    than the tracked one, with RSI below both the crossover RSI and 50, a
    close under the crossover low, the latest close under EMA14 and RSI
    falling over the last three readings.

    Entry is the trigger candle's low less 0.1%; the stop is the tracked high.
    """
    n = len(closes)
    if n < MIN_CANDLES or len(rsi) < n:
        return NoSignal("insufficient_data")

    if _trend(ema70, ema200, closes, opens, highs, lows) != TrendDirection.BULLISH:
        return NoSignal("trend_mismatch")
    if is_ascending(rsi[:n], RSI_TREND_WINDOW):
        return NoSignal("rsi_against_setup")

    crossover = _find_cross_up(ema14, ema70, n - REVERSAL_SCAN_OFFSET)
    if crossover is None:
        return NoSignal("no_crossover")

    crossover_low = lows[crossover]
    crossover_rsi = rsi[crossover]
    final_below_ema14 = _lt(closes[n - 1], ema14[n - 1])
    rsi_falling = is_descending(rsi[:n], RSI_TREND_WINDOW)

    tracked_high: float | None = None
    for k in range(crossover + 1, n - 1):
        level = ema70[k]
        if level is None:
            continue
        near_ema70 = highs[k] >= level and lows[k] <= level
        if not (near_ema70 or closes[k] > level):
            continue

        lower_high = tracked_high is not None and highs[k] < tracked_high
        if tracked_high is None or highs[k] < tracked_high:
            tracked_high = highs[k]

        if (
            lower_high
            and _lt(rsi[k], crossover_rsi)
            and _lt(rsi[k], RSI_MIDLINE)
            and closes[k] < crossover_low
            and final_below_ema14
            and rsi_falling
        ):
            return _short(lows[k] * (1 - ENTRY_OFFSET), tracked_high)

    return NoSignal("no_trigger")


def detect_bearish_to_bullish(
    ema14: FloatSeries,
    ema70: FloatSeries,
    ema200: FloatSeries,
    rsi: FloatSeries,
    lows: Sequence[float],
    highs: Sequence[float],
    closes: Sequence[float],
    opens: Sequence[float],
) -> SignalResult:
    """Long setup: a bearish market turning up after an EMA14 drop below EMA70.

    Mirror of detect_bullish_to_bearish: the tracked low rises with each
    candle near or below EMA70, and the trigger needs a higher low, RSI above
    the crossover RSI and 50, a close over the crossover high, the latest
    close over EMA14 and RSI rising over the last three readings.

    Entry is the latest high plus 0.1%; the stop is the tracked low.
    """
    n = len(closes)
    if n < MIN_CANDLES or len(rsi) < n:
        return NoSignal("insufficient_data")

    if _trend(ema70, ema200, closes, opens, highs, lows) != TrendDirection.BEARISH:
        return NoSignal("trend_mismatch")
    if is_descending(rsi[:n], RSI_TREND_WINDOW):
        return NoSignal("rsi_against_setup")

    crossover = _find_cross_down(ema14, ema70, n - REVERSAL_SCAN_OFFSET)
    if crossover is None:
        return NoSignal("no_crossover")

    crossover_high = highs[crossover]
    crossover_rsi = rsi[crossover]
    final_above_ema14 = _gt(closes[n - 1], ema14[n - 1])
    rsi_rising = is_ascending(rsi[:n], RSI_TREND_WINDOW)

    tracked_low: float | None = None
    for k in range(crossover + 1, n - 1):
        level = ema70[k]
        if level is None:
            continue
        near_ema70 = highs[k] >= level and lows[k] <= level
        if not (near_ema70 or closes[k] < level):
            continue

        higher_low = tracked_low is not None and lows[k] > tracked_low
        if tracked_low is None or lows[k] > tracked_low:
            tracked_low = lows[k]

        if (
            higher_low
            and _gt(rsi[k], crossover_rsi)
            and _gt(rsi[k], RSI_MIDLINE)
            and closes[k] > crossover_high
            and final_above_ema14
            and rsi_rising
        ):
            return _long(highs[n - 1] * (1 + ENTRY_OFFSET), tracked_low)

    return NoSignal("no_trigger")


def detect_bullish_spike(
    ema14: FloatSeries,
    ema70: FloatSeries,
    ema200: FloatSeries,
    rsi: FloatSeries,
    lows: Sequence[float],
    highs: Sequence[float],
    closes: Sequence[float],
    opens: Sequence[float],
    bullish_breakout: bool,
    bearish_breakout: bool,
) -> SignalResult:
    """Long continuation after EMA14 clears both EMA70 and EMA200.

    Uses the later of the two crossovers as the reference. The latest candle
    must hold above EMA70 and EMA200 without touching EMA70, close above EMA14
    (or print a higher low on an EMA14 touch), keep its low above the lowest
    low since the crossover, and show RSI above the crossover RSI and 50 and
    rising over the last three readings.

    Entry is the latest close plus 0.1%; the stop is the lowest low since the
    crossover.
    """
    n = len(closes)
    if n < MIN_CANDLES or len(rsi) < n:
        return NoSignal("insufficient_data")
    if bearish_breakout:
        return NoSignal("opposing_breakout")
    if _trend(ema70, ema200, closes, opens, highs, lows) != TrendDirection.BULLISH:
        return NoSignal("trend_mismatch")

    cross70 = _find_cross_up(ema14, ema70, n - SPIKE_SCAN_OFFSET)
    cross200 = _find_cross_up(ema14, ema200, n - SPIKE_SCAN_OFFSET)
    if cross70 is None or cross200 is None:
        return NoSignal("no_crossover")

    crossover = max(cross70, cross200)
    crossover_low = lows[crossover]
    crossover_rsi = rsi[crossover]
    lowest_low = min(lows[crossover:n])

    close, low, high = closes[n - 1], lows[n - 1], highs[n - 1]
    e14, e70, e200, last_rsi = ema14[n - 1], ema70[n - 1], ema200[n - 1], rsi[n - 1]
    if e70 is None or e200 is None or last_rsi is None:
        return NoSignal("insufficient_data")
    if low <= e70 <= high:
        return NoSignal("touching_ema70")

    conditions = (
        close > e70
        and close > e200
        and (_gt(close, e14) or is_ascending_low_on_ema_touch(lows, ema14))
        and low > lowest_low
        and _gt(last_rsi, crossover_rsi)
        and last_rsi > RSI_MIDLINE
        and close > crossover_low
        and is_ascending(rsi[:n], RSI_TREND_WINDOW)
    )
    if not conditions:
        return NoSignal("conditions_not_met")

    return _long(close * (1 + ENTRY_OFFSET), lowest_low)


def detect_bearish_collapse(
    ema14: FloatSeries,
    ema70: FloatSeries,
    ema200: FloatSeries,
    rsi: FloatSeries,
    lows: Sequence[float],
    highs: Sequence[float],
    closes: Sequence[float],
    opens: Sequence[float],
    bullish_breakout: bool,
    bearish_breakout: bool,
) -> SignalResult:
    """Short continuation after EMA14 falls through both EMA70 and EMA200.

    Mirror of detect_bullish_spike around the highest high since the later
    crossover. Entry is the latest close less 0.1%.
    """
    n = len(closes)
    if n < MIN_CANDLES or len(rsi) < n:
        return NoSignal("insufficient_data")
    if bullish_breakout:
        return NoSignal("opposing_breakout")
    if _trend(ema70, ema200, closes, opens, highs, lows) != TrendDirection.BEARISH:
        return NoSignal("trend_mismatch")

    cross70 = _find_cross_down(ema14, ema70, n - SPIKE_SCAN_OFFSET)
    cross200 = _find_cross_down(ema14, ema200, n - SPIKE_SCAN_OFFSET)
    if cross70 is None or cross200 is None:
        return NoSignal("no_crossover")

    crossover = max(cross70, cross200)
    crossover_high = highs[crossover]
    crossover_rsi = rsi[crossover]
    highest_high = max(highs[crossover:n])

    close, low, high = closes[n - 1], lows[n - 1], highs[n - 1]
    e14, e70, e200, last_rsi = ema14[n - 1], ema70[n - 1], ema200[n - 1], rsi[n - 1]
    if e70 is None or e200 is None or last_rsi is None:
        return NoSignal("insufficient_data")
    if low <= e70 <= high:
        return NoSignal("touching_ema70")

    conditions = (
        close < e70
        and close < e200
        and (_lt(close, e14) or is_descending_high_on_ema_touch(highs, ema14))
        and high < highest_high
        and _lt(last_rsi, crossover_rsi)
        and last_rsi < RSI_MIDLINE
        and close < crossover_high
        and is_descending(rsi[:n], RSI_TREND_WINDOW)
    )
    if not conditions:
        return NoSignal("conditions_not_met")

    return _short(close * (1 - ENTRY_OFFSET), highest_high)
