"""Tests for session window resolution and per-session extremes."""

from screener.models import Candle, Timeframe
from screener.signals.sessions import (
    DAY_MS,
    HOUR_MS,
    MINUTE_MS,
    DailyCutover,
    candles_in_window,
    get_sessions,
    last_n_session_start_times,
    recent_session_highs,
    recent_session_lows,
)

#: 2024-01-10 12:00 UTC and the 00:00 UTC cutover that opened its session.
NOW_MS = 1704888000000
DAY_START_MS = 1704844800000


def _candle(ts: int, high: float, low: float) -> Candle:
    return Candle(timestamp_ms=ts, open=low, high=high, low=low, close=high, volume=1.0)


class TestDailyCutover:
    """Tests for the exchange-local daily cutover."""

    def test_default_session_length_is_23h45m(self) -> None:
        assert DailyCutover().session_length_ms == 23 * HOUR_MS + 45 * MINUTE_MS

    def test_default_cutover_is_midnight_utc(self) -> None:
        """08:00 at UTC+8 is 00:00 UTC."""
        assert DailyCutover().active_start(NOW_MS) == DAY_START_MS

    def test_just_before_cutover_belongs_to_previous_day(self) -> None:
        assert DailyCutover().active_start(DAY_START_MS - 1) == DAY_START_MS - DAY_MS

    def test_exactly_at_cutover_opens_new_session(self) -> None:
        assert DailyCutover().active_start(DAY_START_MS) == DAY_START_MS

    def test_offset_cutover_rolls_back_before_boundary(self) -> None:
        """With a 08:00 UTC cutover, 06:00 UTC still belongs to yesterday's session."""
        cutover = DailyCutover(utc_offset_hours=0, cutover_hour=8)
        six_am = DAY_START_MS + 6 * HOUR_MS
        assert cutover.active_start(six_am) == DAY_START_MS - DAY_MS + 8 * HOUR_MS
        assert cutover.active_start(NOW_MS) == DAY_START_MS + 8 * HOUR_MS


class TestGetSessions:
    """Tests for active/previous session windows."""

    def test_daily_windows(self) -> None:
        window = get_sessions(Timeframe.D1, NOW_MS)

        assert window.session_start == DAY_START_MS
        assert window.session_end == DAY_START_MS + 23 * HOUR_MS + 45 * MINUTE_MS
        assert window.prev_session_start == DAY_START_MS - DAY_MS
        assert window.prev_session_end - window.prev_session_start == (
            window.session_end - window.session_start
        )

    def test_same_instant_resolves_same_windows(self) -> None:
        """Resolution depends only on the timeframe and the reference instant."""
        for timeframe in Timeframe:
            assert get_sessions(timeframe, NOW_MS) == get_sessions(timeframe, NOW_MS)
        assert last_n_session_start_times(4, NOW_MS) == last_n_session_start_times(4, NOW_MS)

    def test_four_hour_bucket(self) -> None:
        window = get_sessions(Timeframe.H4, NOW_MS + 90 * MINUTE_MS)

        assert window.session_start == NOW_MS
        assert window.session_end == NOW_MS + 4 * HOUR_MS
        assert window.prev_session_start == NOW_MS - 4 * HOUR_MS
        assert window.prev_session_end == NOW_MS

    def test_fifteen_minute_bucket(self) -> None:
        window = get_sessions(Timeframe.M15, NOW_MS + 7 * MINUTE_MS)

        assert window.session_start == NOW_MS
        assert window.session_end == NOW_MS + 15 * MINUTE_MS
        assert window.prev_session_start == NOW_MS - 15 * MINUTE_MS


class TestSessionHistory:
    """Tests for multi-session start times and extremes."""

    def test_last_n_session_start_times_oldest_first(self) -> None:
        starts = last_n_session_start_times(4, NOW_MS)
        assert starts == [
            DAY_START_MS - 3 * DAY_MS,
            DAY_START_MS - 2 * DAY_MS,
            DAY_START_MS - DAY_MS,
            DAY_START_MS,
        ]

    def test_last_n_zero(self) -> None:
        assert last_n_session_start_times(0, NOW_MS) == []

    def test_candles_in_window_is_half_open(self) -> None:
        candles = [_candle(DAY_START_MS - 1, 1, 1), _candle(DAY_START_MS, 2, 2), _candle(NOW_MS, 3, 3)]
        result = candles_in_window(candles, DAY_START_MS, NOW_MS)
        assert [c.timestamp_ms for c in result] == [DAY_START_MS]

    def test_recent_session_extremes(self) -> None:
        starts = [DAY_START_MS - 2 * DAY_MS, DAY_START_MS - DAY_MS, DAY_START_MS]
        candles = [
            _candle(starts[0] + HOUR_MS, 110, 90),
            _candle(starts[0] + 2 * HOUR_MS, 115, 95),
            _candle(NOW_MS, 120, 100),
        ]

        assert recent_session_highs(candles, starts) == [115, None, 120]
        assert recent_session_lows(candles, starts) == [90, None, 100]
