"""Session window resolver.

The daily session starts at a fixed exchange-local cutover (08:00 in a UTC+8
reference clock, i.e. 00:00 UTC) and ends at 07:45 local the next day, so a
daily session is 23h45m long. Sub-daily timeframes use epoch-aligned buckets.

Every function takes the reference instant explicitly; nothing here reads the
wall clock.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from screener.models import Candle, Timeframe

MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS


@dataclass(frozen=True)
class DailyCutover:
    """Exchange-local daily session boundaries and their UTC offset."""

    utc_offset_hours: int = 8
    cutover_hour: int = 8
    end_hour: int = 7
    end_minute: int = 45

    @property
    def session_length_ms(self) -> int:
        start_minutes = self.cutover_hour * 60
        end_minutes = self.end_hour * 60 + self.end_minute
        return DAY_MS + (end_minutes - start_minutes) * MINUTE_MS

    def active_start(self, now_ms: int) -> int:
        """UTC ms of the cutover that opened the session active at ``now_ms``."""
        utc_day_start = (now_ms // DAY_MS) * DAY_MS
        today_cutover = utc_day_start + (self.cutover_hour - self.utc_offset_hours) * HOUR_MS
        # offsets can push the cutover into the neighbouring UTC day
        while today_cutover > now_ms:
            today_cutover -= DAY_MS
        while today_cutover + DAY_MS <= now_ms:
            today_cutover += DAY_MS
        return today_cutover


DEFAULT_CUTOVER = DailyCutover()


@dataclass(frozen=True)
class SessionWindow:
    """Active and previous session boundaries in epoch milliseconds."""

    session_start: int
    session_end: int
    prev_session_start: int
    prev_session_end: int


def get_sessions(
    timeframe: Timeframe,
    now_ms: int,
    cutover: DailyCutover = DEFAULT_CUTOVER,
) -> SessionWindow:
    """Resolve the active and previous session windows at ``now_ms``.

    Args:
        timeframe: Candle timeframe; ``1d`` uses the daily cutover, others use
            epoch-aligned buckets of the timeframe's length.
        now_ms: Reference instant in epoch milliseconds.
        cutover: Daily cutover definition.

    Returns:
        SessionWindow. The previous session always immediately precedes the
        active one.
    """
    if timeframe == Timeframe.D1:
        start = cutover.active_start(now_ms)
        length = cutover.session_length_ms
        prev_start = start - DAY_MS
        return SessionWindow(
            session_start=start,
            session_end=start + length,
            prev_session_start=prev_start,
            prev_session_end=prev_start + length,
        )

    size = timeframe.bucket_ms
    start = (now_ms // size) * size
    return SessionWindow(
        session_start=start,
        session_end=start + size,
        prev_session_start=start - size,
        prev_session_end=start,
    )


def last_n_session_start_times(
    n: int, now_ms: int, cutover: DailyCutover = DEFAULT_CUTOVER
) -> list[int]:
    """Return the last ``n`` daily cutovers, oldest first, ending with the active one."""
    if n <= 0:
        return []
    active = cutover.active_start(now_ms)
    return [active - i * DAY_MS for i in range(n - 1, -1, -1)]


def candles_in_window(candles: Sequence[Candle], start: int, end: int) -> list[Candle]:
    """Candles with ``start <= timestamp < end``."""
    return [c for c in candles if start <= c.timestamp_ms < end]


def _session_slices(
    candles: Sequence[Candle], starts: Sequence[int]
) -> list[list[Candle]]:
    slices = []
    for i, start in enumerate(starts):
        end = starts[i + 1] if i < len(starts) - 1 else float("inf")
        slices.append([c for c in candles if start <= c.timestamp_ms < end])
    return slices


def recent_session_highs(
    candles: Sequence[Candle], starts: Sequence[int]
) -> list[float | None]:
    """Highest high per session. The last session is open-ended; empty sessions are None."""
    return [
        max(c.high for c in chunk) if chunk else None
        for chunk in _session_slices(candles, starts)
    ]


def recent_session_lows(
    candles: Sequence[Candle], starts: Sequence[int]
) -> list[float | None]:
    """Lowest low per session. The last session is open-ended; empty sessions are None."""
    return [
        min(c.low for c in chunk) if chunk else None
        for chunk in _session_slices(candles, starts)
    ]
