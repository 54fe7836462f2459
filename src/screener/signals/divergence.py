"""Price divergence against RSI and volume.

Each detector compares two price extremes (previous session vs current
session) with the oscillator reading at those extremes and returns a
Divergence, or None when the shape is not present or a reading is missing.
"""

from __future__ import annotations

from screener.signals.models import Divergence, DivergenceKind


def _complete(*values: float | None) -> bool:
    return all(v is not None for v in values)


def detect_bearish_divergence(
    prev_high: float | None,
    curr_high: float | None,
    prev_rsi: float | None,
    curr_rsi: float | None,
) -> Divergence | None:
    """Higher high in price with a lower RSI at that high."""
    if not _complete(prev_high, curr_high, prev_rsi, curr_rsi):
        return None
    if curr_high > prev_high and curr_rsi < prev_rsi:
        return Divergence(DivergenceKind.BEARISH, prev_high, curr_high, prev_rsi, curr_rsi)
    return None


def detect_bullish_divergence(
    prev_low: float | None,
    curr_low: float | None,
    prev_rsi: float | None,
    curr_rsi: float | None,
) -> Divergence | None:
    """Lower low in price with a higher RSI at that low."""
    if not _complete(prev_low, curr_low, prev_rsi, curr_rsi):
        return None
    if curr_low < prev_low and curr_rsi > prev_rsi:
        return Divergence(DivergenceKind.BULLISH, prev_low, curr_low, prev_rsi, curr_rsi)
    return None


def detect_bearish_volume_divergence(
    prev_high: float | None,
    curr_high: float | None,
    prev_volume: float | None,
    curr_volume: float | None,
) -> Divergence | None:
    """Higher high in price on lower volume."""
    if not _complete(prev_high, curr_high, prev_volume, curr_volume):
        return None
    if curr_high > prev_high and curr_volume < prev_volume:
        return Divergence(
            DivergenceKind.BEARISH_VOLUME, prev_high, curr_high, prev_volume, curr_volume
        )
    return None


def detect_bullish_volume_divergence(
    prev_low: float | None,
    curr_low: float | None,
    prev_volume: float | None,
    curr_volume: float | None,
) -> Divergence | None:
    """Lower low in price on higher volume."""
    if not _complete(prev_low, curr_low, prev_volume, curr_volume):
        return None
    if curr_low < prev_low and curr_volume > prev_volume:
        return Divergence(
            DivergenceKind.BULLISH_VOLUME, prev_low, curr_low, prev_volume, curr_volume
        )
    return None
