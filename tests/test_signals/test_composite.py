"""Tests for composite reversal, spike and collapse classifiers.

Fixtures are 20-candle hand-built series. EMA70/EMA200 are held flat so
the main trend comes from the EMA ordering and only EMA14 crosses.
"""

import pytest

from screener.signals.composite import (
    detect_bearish_collapse,
    detect_bearish_to_bullish,
    detect_bullish_spike,
    detect_bullish_to_bearish,
)
from screener.signals.models import NoSignal, TradeDirection, TradeSignal


def _series(candles: list[tuple[float, float, float, float]]) -> dict[str, list[float]]:
    """Split (open, high, low, close) tuples into the keyword arguments the detectors take."""
    return {
        "opens": [c[0] for c in candles],
        "highs": [c[1] for c in candles],
        "lows": [c[2] for c in candles],
        "closes": [c[3] for c in candles],
    }


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def bullish_to_bearish_setup() -> dict:
    """Bullish market: EMA14 crosses above EMA70 at index 6, lower high at index 8."""
    candles = (
        [(108, 112, 104, 109)] * 6
        + [(121, 125, 120, 122), (115, 118, 105, 108), (110, 116, 104, 106)]
        + [(98, 100, 95, 97)] * 10
        + [(101, 102, 98, 100)]
    )
    rsi = [55.0] * 20
    rsi[6], rsi[8] = 70.0, 40.0
    rsi[17], rsi[18], rsi[19] = 48.0, 44.0, 40.0
    return {
        "ema14": [105.0] * 6 + [115.0] * 14,
        "ema70": [110.0] * 20,
        "ema200": [100.0] * 20,
        "rsi": rsi,
        **_series(candles),
    }


@pytest.fixture
def bearish_to_bullish_setup() -> dict:
    """Bearish market: EMA14 crosses below EMA70 at index 6, higher low at index 8."""
    candles = (
        [(108, 110, 105, 107)] * 6
        + [(79, 80, 75, 78), (85, 95, 82, 92), (90, 104, 85, 102)]
        + [(108, 110, 105, 107)] * 10
        + [(99, 102, 98, 100)]
    )
    rsi = [45.0] * 20
    rsi[6], rsi[8] = 30.0, 60.0
    rsi[17], rsi[18], rsi[19] = 52.0, 56.0, 60.0
    return {
        "ema14": [105.0] * 6 + [95.0] * 14,
        "ema70": [100.0] * 20,
        "ema200": [110.0] * 20,
        "rsi": rsi,
        **_series(candles),
    }


@pytest.fixture
def spike_setup() -> dict:
    """EMA14 clears EMA70 and EMA200 at index 10, price climbs with rising RSI."""
    candles = (
        [(95, 98, 92, 96)] * 10
        + [(105, 108, 104, 107)]
        + [(108, 114, 106, 112)] * 8
        + [(113, 120, 112, 118)]
    )
    rsi = [50.0] * 20
    rsi[10] = 55.0
    rsi[17], rsi[18], rsi[19] = 58.0, 61.0, 65.0
    return {
        "ema14": [90.0] * 10 + [110.0] * 10,
        "ema70": [100.0] * 20,
        "ema200": [95.0] * 20,
        "rsi": rsi,
        **_series(candles),
    }


@pytest.fixture
def collapse_setup() -> dict:
    """EMA14 falls through EMA70 and EMA200 at index 10, price slides with falling RSI."""
    candles = (
        [(105, 108, 102, 106)] * 10
        + [(95, 96, 92, 93)]
        + [(92, 94, 86, 88)] * 8
        + [(87, 88, 80, 82)]
    )
    rsi = [50.0] * 20
    rsi[10] = 45.0
    rsi[17], rsi[18], rsi[19] = 42.0, 39.0, 35.0
    return {
        "ema14": [110.0] * 10 + [90.0] * 10,
        "ema70": [100.0] * 20,
        "ema200": [105.0] * 20,
        "rsi": rsi,
        **_series(candles),
    }


# ---------------------------------------------------------------------------
# Reversals
# ---------------------------------------------------------------------------


class TestBullishToBearish:
    """Tests for the short reversal setup."""

    def test_signal_levels(self, bullish_to_bearish_setup: dict) -> None:
        """Entry = trigger low 104 less 0.1%, stop = tracked high 116."""
        result = detect_bullish_to_bearish(**bullish_to_bearish_setup)

        assert isinstance(result, TradeSignal)
        assert result.direction == TradeDirection.SHORT
        assert result.entry == pytest.approx(103.896)
        assert result.stop_loss == pytest.approx(116.0)
        assert result.tp1 == pytest.approx(91.792)
        assert result.tp2 == pytest.approx(79.688)
        assert result.risk == pytest.approx(12.104)

    def test_rsi_above_midline_at_trigger(self, bullish_to_bearish_setup: dict) -> None:
        bullish_to_bearish_setup["rsi"][8] = 55.0
        result = detect_bullish_to_bearish(**bullish_to_bearish_setup)
        assert result == NoSignal("no_trigger")

    def test_rising_rsi_blocks_setup(self, bullish_to_bearish_setup: dict) -> None:
        bullish_to_bearish_setup["rsi"][17:20] = [40.0, 44.0, 48.0]
        result = detect_bullish_to_bearish(**bullish_to_bearish_setup)
        assert result == NoSignal("rsi_against_setup")

    def test_bearish_market_is_mismatch(self, bearish_to_bullish_setup: dict) -> None:
        result = detect_bullish_to_bearish(**bearish_to_bullish_setup)
        assert result == NoSignal("trend_mismatch")

    def test_no_crossover(self, bullish_to_bearish_setup: dict) -> None:
        bullish_to_bearish_setup["ema14"] = [115.0] * 20
        result = detect_bullish_to_bearish(**bullish_to_bearish_setup)
        assert result == NoSignal("no_crossover")

    def test_insufficient_data(self) -> None:
        series = [100.0] * 5
        result = detect_bullish_to_bearish(
            series, series, series, series, series, series, series, series
        )
        assert result == NoSignal("insufficient_data")
        assert result.is_signal is False


class TestBearishToBullish:
    """Tests for the long reversal setup."""

    def test_signal_levels(self, bearish_to_bullish_setup: dict) -> None:
        """Entry = latest high 102 plus 0.1%, stop = tracked low 85."""
        result = detect_bearish_to_bullish(**bearish_to_bullish_setup)

        assert isinstance(result, TradeSignal)
        assert result.direction == TradeDirection.LONG
        assert result.entry == pytest.approx(102.102)
        assert result.stop_loss == pytest.approx(85.0)
        assert result.tp1 == pytest.approx(119.204)
        assert result.tp2 == pytest.approx(136.306)

    def test_close_below_ema14_blocks_trigger(self, bearish_to_bullish_setup: dict) -> None:
        bearish_to_bullish_setup["ema14"][-1] = 101.0
        result = detect_bearish_to_bullish(**bearish_to_bullish_setup)
        assert result == NoSignal("no_trigger")

    def test_bullish_market_is_mismatch(self, bullish_to_bearish_setup: dict) -> None:
        result = detect_bearish_to_bullish(**bullish_to_bearish_setup)
        assert result == NoSignal("trend_mismatch")

    def test_stop_above_entry_is_degenerate(self, bearish_to_bullish_setup: dict) -> None:
        """Tracked low 99 sits above entry 96 * 1.001, so there is no risk to size."""
        setup = bearish_to_bullish_setup
        for key, value in zip(("opens", "highs", "lows", "closes"), (100, 104, 99, 102)):
            setup[key][8] = value
        for key, value in zip(("opens", "highs", "lows", "closes"), (95, 96, 94, 95.5)):
            setup[key][-1] = value

        result = detect_bearish_to_bullish(**setup)

        assert result == NoSignal("degenerate_risk")
        assert result.is_signal is False


# ---------------------------------------------------------------------------
# Spike / collapse
# ---------------------------------------------------------------------------


class TestBullishSpike:
    """Tests for the long continuation setup."""

    def test_signal_levels(self, spike_setup: dict) -> None:
        """Entry = close 118 plus 0.1%, stop = lowest low 104 since the crossover."""
        result = detect_bullish_spike(**spike_setup, bullish_breakout=False, bearish_breakout=False)

        assert isinstance(result, TradeSignal)
        assert result.direction == TradeDirection.LONG
        assert result.entry == pytest.approx(118.118)
        assert result.stop_loss == pytest.approx(104.0)
        assert result.tp1 == pytest.approx(132.236)
        assert result.tp2 == pytest.approx(146.354)

    def test_bearish_breakout_vetoes(self, spike_setup: dict) -> None:
        result = detect_bullish_spike(**spike_setup, bullish_breakout=False, bearish_breakout=True)
        assert result == NoSignal("opposing_breakout")

    def test_touching_ema70(self, spike_setup: dict) -> None:
        spike_setup["lows"][-1] = 99.0
        result = detect_bullish_spike(**spike_setup, bullish_breakout=False, bearish_breakout=False)
        assert result == NoSignal("touching_ema70")

    def test_flat_rsi_fails_conditions(self, spike_setup: dict) -> None:
        spike_setup["rsi"][17:20] = [65.0, 65.0, 65.0]
        result = detect_bullish_spike(**spike_setup, bullish_breakout=False, bearish_breakout=False)
        assert result == NoSignal("conditions_not_met")


class TestBearishCollapse:
    """Tests for the short continuation setup."""

    def test_signal_levels(self, collapse_setup: dict) -> None:
        """Entry = close 82 less 0.1%, stop = highest high 96 since the crossover."""
        result = detect_bearish_collapse(
            **collapse_setup, bullish_breakout=False, bearish_breakout=False
        )

        assert isinstance(result, TradeSignal)
        assert result.direction == TradeDirection.SHORT
        assert result.entry == pytest.approx(81.918)
        assert result.stop_loss == pytest.approx(96.0)
        assert result.tp1 == pytest.approx(67.836)
        assert result.tp2 == pytest.approx(53.754)

    def test_bullish_breakout_vetoes(self, collapse_setup: dict) -> None:
        result = detect_bearish_collapse(
            **collapse_setup, bullish_breakout=True, bearish_breakout=False
        )
        assert result == NoSignal("opposing_breakout")

    def test_bullish_market_is_mismatch(self, spike_setup: dict) -> None:
        result = detect_bearish_collapse(**spike_setup, bullish_breakout=False, bearish_breakout=False)
        assert result == NoSignal("trend_mismatch")


class TestSignalSerialization:
    """Tests for the tagged signal payloads."""

    def test_trade_signal_to_dict(self, spike_setup: dict) -> None:
        result = detect_bullish_spike(**spike_setup, bullish_breakout=False, bearish_breakout=False)
        payload = result.to_dict()
        assert payload["signal"] is True
        assert payload["direction"] == "long"
        assert payload["entry"] == pytest.approx(118.118)

    def test_no_signal_to_dict(self) -> None:
        payload = NoSignal("no_trigger").to_dict()
        assert payload["signal"] is False
        assert payload["reason"] == "no_trigger"
