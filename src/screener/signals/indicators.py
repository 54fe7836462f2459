"""Time-series primitives: EMA, Wilder RSI and small helpers over indicator series.

Every series returned here is aligned index-for-index with its input. Entries
that cannot be computed yet (the warm-up prefix) are None. Short or degenerate
input never raises; it degrades to an all-None series, an empty RSI list or a
False/None answer.
"""

from __future__ import annotations

from collections.abc import Sequence

from screener.signals.models import InsideRangeRecord

Series = list[float | None]

#: Default relative band around an EMA that counts as a touch (0.15%).
DEFAULT_TOUCH_MARGIN = 0.0015


def calculate_ema(values: Sequence[float], period: int) -> Series:
    """Compute an exponential moving average seeded with a simple average.

    Uses the recursive formula:
        k = 2 / (period + 1)
        EMA_i = value_i * k + EMA_{i-1} * (1 - k)

    The simple average of the first ``period`` values seeds the recursion and
    is smoothed with ``values[period - 1]`` itself, so index ``period - 1`` is
    the first computed entry.

    Args:
        values: Ordered values, oldest first.
        period: EMA period. Must be supplied by the caller.

    Returns:
        List with the same length as ``values``. The first ``period - 1``
        entries are None; everything is None if there are fewer than
        ``period`` values.
    """
    n = len(values)
    ema: Series = [None] * n
    if period <= 0 or n < period:
        return ema

    k = 2 / (period + 1)
    previous = sum(values[:period]) / period
    for i in range(period - 1, n):
        current = values[i] * k + previous * (1 - k)
        ema[i] = current
        previous = current

    return ema


def calculate_rsi(closes: Sequence[float], period: int) -> Series:
    """Compute Wilder's Relative Strength Index.

    The first average gain/loss are simple averages of the first ``period``
    close-to-close deltas; later averages use Wilder smoothing
    ``avg = (avg * (period - 1) + current) / period``. A zero average loss
    makes RS infinite and RSI exactly 100.

    Args:
        closes: Close prices, oldest first.
        period: RSI period. Must be supplied by the caller.

    Returns:
        Empty list when ``len(closes) <= period``. Otherwise a list of the same
        length as ``closes`` whose first ``period`` entries are None.
    """
    n = len(closes)
    if period <= 0 or n <= period:
        return []

    rsi: Series = [None] * n
    gains = 0.0
    losses = 0.0
    for i in range(1, period + 1):
        delta = closes[i] - closes[i - 1]
        if delta >= 0:
            gains += delta
        else:
            losses -= delta

    avg_gain = gains / period
    avg_loss = losses / period
    rsi[period] = _rsi_value(avg_gain, avg_loss)

    for i in range(period + 1, n):
        delta = closes[i] - closes[i - 1]
        gain = delta if delta > 0 else 0.0
        loss = -delta if delta < 0 else 0.0
        avg_gain = (avg_gain * (period - 1) + gain) / period
        avg_loss = (avg_loss * (period - 1) + loss) / period
        rsi[i] = _rsi_value(avg_gain, avg_loss)

    return rsi


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100 - 100 / (1 + rs)


def last_value(series: Sequence[float | None]) -> float | None:
    """Return the final entry of ``series`` or None if empty."""
    return series[-1] if series else None


def ema_gap_percent(
    short: Sequence[float | None], long: Sequence[float | None]
) -> float | None:
    """Percentage distance of the latest short EMA from the latest long EMA."""
    last_short = last_value(short)
    last_long = last_value(long)
    if last_short is None or last_long is None or last_long == 0:
        return None
    return (last_short - last_long) / last_long * 100


def ema_inside_range(
    fast: Sequence[float | None],
    mid: Sequence[float | None],
    slow: Sequence[float | None],
    lookback: int = 5,
) -> list[InsideRangeRecord]:
    """For each of the last ``lookback`` candles, report whether ``fast`` lies
    strictly between ``mid`` and ``slow``."""
    n = min(len(fast), len(mid), len(slow))
    records: list[InsideRangeRecord] = []
    for i in range(max(0, n - lookback), n):
        f, m, s = fast[i], mid[i], slow[i]
        inside = False
        if f is not None and m is not None and s is not None:
            inside = min(m, s) < f < max(m, s)
        records.append(InsideRangeRecord(candle_index=i, inside=inside, fast=f, mid=m, slow=s))
    return records


def _window(series: Sequence[float | None], window: int) -> list[float] | None:
    if window <= 0 or len(series) < window:
        return None
    tail = series[-window:]
    if any(v is None for v in tail):
        return None
    return list(tail)  # type: ignore[arg-type]


def is_ascending(series: Sequence[float | None], window: int = 3) -> bool:
    """True when the last ``window`` values are strictly increasing."""
    tail = _window(series, window)
    if tail is None:
        return False
    return all(tail[i] > tail[i - 1] for i in range(1, len(tail)))


def is_descending(series: Sequence[float | None], window: int = 3) -> bool:
    """True when the last ``window`` values are strictly decreasing."""
    tail = _window(series, window)
    if tail is None:
        return False
    return all(tail[i] < tail[i - 1] for i in range(1, len(tail)))


def touched_level(
    price: float, level: float | None, margin: float = DEFAULT_TOUCH_MARGIN
) -> bool:
    """True when ``price`` is within ``margin`` (relative) of ``level``."""
    if level is None or level == 0:
        return False
    return abs(price - level) / level <= margin


def is_ascending_low_on_ema_touch(
    lows: Sequence[float],
    ema: Sequence[float | None],
    margin: float = DEFAULT_TOUCH_MARGIN,
) -> bool:
    """True when the latest low touches the EMA above the previous touching low."""
    if not lows or len(ema) < len(lows):
        return False
    latest = len(lows) - 1
    if not touched_level(lows[latest], ema[latest], margin):
        return False
    for i in range(latest - 1, -1, -1):
        if touched_level(lows[i], ema[i], margin):
            return lows[latest] > lows[i]
    return False


def is_descending_high_on_ema_touch(
    highs: Sequence[float],
    ema: Sequence[float | None],
    margin: float = DEFAULT_TOUCH_MARGIN,
) -> bool:
    """True when the latest high touches the EMA below the previous touching high."""
    if not highs or len(ema) < len(highs):
        return False
    latest = len(highs) - 1
    if not touched_level(highs[latest], ema[latest], margin):
        return False
    for i in range(latest - 1, -1, -1):
        if touched_level(highs[i], ema[i], margin):
            return highs[latest] < highs[i]
    return False
