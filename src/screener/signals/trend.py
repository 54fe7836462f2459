"""Main trend classification from the EMA70/EMA200 relationship.

Scans backward for the most recent crossover between the mid and long EMAs
and annotates it with breakout, proximity and doji information. All pattern
and composite detectors derive their trend guard from this function.
"""

from __future__ import annotations

from collections.abc import Sequence

from screener.signals.models import LevelType, TrendDirection, TrendResult


def is_doji(open_: float, high: float, low: float, close: float, ratio: float = 0.1) -> bool:
    """True when the candle body is at most ``ratio`` of its full range."""
    return abs(close - open_) <= (high - low) * ratio


def _crossed_up(prev_a, prev_b, curr_a, curr_b) -> bool:
    if None in (prev_a, prev_b, curr_a, curr_b):
        return False
    return prev_a <= prev_b and curr_a > curr_b


def _crossed_down(prev_a, prev_b, curr_a, curr_b) -> bool:
    if None in (prev_a, prev_b, curr_a, curr_b):
        return False
    return prev_a >= prev_b and curr_a < curr_b


def get_main_trend(
    ema70: Sequence[float | None],
    ema200: Sequence[float | None],
    closes: Sequence[float],
    opens: Sequence[float],
    highs: Sequence[float],
    lows: Sequence[float],
    tolerance_percent: float = 0.5,
    doji_tolerance_ratio: float = 0.1,
) -> TrendResult | None:
    """Classify the main trend from the most recent EMA70/EMA200 crossover.

    Scans from the second-to-last index down to 1. A bullish crossover
    (``prev70 <= prev200`` and ``curr70 > curr200``) yields a bullish trend with
    the crossover close as support; a bearish crossover is the mirror. Without
    a crossover the trend follows the current EMA ordering (``>=`` is bullish),
    ``breakout`` is None and ``is_near`` is True.

    Args:
        ema70: Mid EMA series.
        ema200: Long EMA series.
        closes: Close prices aligned with the EMA series.
        opens: Open prices.
        highs: High prices.
        lows: Low prices.
        tolerance_percent: Distance from the crossover price, in percent, that
            still counts as near.
        doji_tolerance_ratio: Maximum body/range ratio of a doji.

    Returns:
        TrendResult, or None when there are no candles.
    """
    n = min(len(ema70), len(ema200), len(closes), len(opens), len(highs), len(lows))
    if n == 0:
        return None

    last_close = closes[n - 1]
    last_ema200 = ema200[n - 1]
    last_is_doji = is_doji(
        opens[n - 1], highs[n - 1], lows[n - 1], last_close, doji_tolerance_ratio
    )

    for i in range(n - 2, 0, -1):
        prev70, prev200 = ema70[i], ema200[i]
        curr70, curr200 = ema70[i + 1], ema200[i + 1]

        if _crossed_up(prev70, prev200, curr70, curr200):
            crossover_price = closes[i + 1]
            breakout = last_ema200 is not None and last_close > last_ema200
            return TrendResult(
                trend=TrendDirection.BULLISH,
                level_type=LevelType.SUPPORT,
                crossover_price=crossover_price,
                breakout=breakout,
                is_near=_is_near(last_close, crossover_price, tolerance_percent),
                is_doji_after_breakout=breakout and last_is_doji,
            )

        if _crossed_down(prev70, prev200, curr70, curr200):
            crossover_price = closes[i + 1]
            breakout = last_ema200 is not None and last_close < last_ema200
            return TrendResult(
                trend=TrendDirection.BEARISH,
                level_type=LevelType.RESISTANCE,
                crossover_price=crossover_price,
                breakout=breakout,
                is_near=_is_near(last_close, crossover_price, tolerance_percent),
                is_doji_after_breakout=breakout and last_is_doji,
            )

    last70 = ema70[n - 1]
    bullish = last70 is not None and last_ema200 is not None and last70 >= last_ema200
    return TrendResult(
        trend=TrendDirection.BULLISH if bullish else TrendDirection.BEARISH,
        level_type=LevelType.SUPPORT if bullish else LevelType.RESISTANCE,
        crossover_price=last_close,
        breakout=None,
        is_near=True,
        is_doji_after_breakout=False,
    )


def _is_near(price: float, reference: float, tolerance_percent: float) -> bool:
    return abs(price - reference) <= tolerance_percent / 100 * reference
