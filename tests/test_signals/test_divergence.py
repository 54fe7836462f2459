"""Tests for RSI and volume divergence detectors."""

from screener.signals.divergence import (
    detect_bearish_divergence,
    detect_bearish_volume_divergence,
    detect_bullish_divergence,
    detect_bullish_volume_divergence,
)
from screener.signals.models import DivergenceKind


class TestRsiDivergence:
    """Tests for price/RSI divergence."""

    def test_bearish_divergence(self) -> None:
        result = detect_bearish_divergence(100.0, 105.0, 70.0, 62.0)
        assert result is not None
        assert result.kind == DivergenceKind.BEARISH
        assert result.to_dict()["curr_price"] == 105.0

    def test_higher_high_with_higher_rsi_is_not_divergence(self) -> None:
        assert detect_bearish_divergence(100.0, 105.0, 60.0, 65.0) is None

    def test_bullish_divergence(self) -> None:
        result = detect_bullish_divergence(100.0, 95.0, 30.0, 38.0)
        assert result is not None
        assert result.kind == DivergenceKind.BULLISH

    def test_missing_reading_is_none(self) -> None:
        assert detect_bullish_divergence(100.0, 95.0, None, 38.0) is None
        assert detect_bearish_divergence(None, 105.0, 70.0, 62.0) is None


class TestVolumeDivergence:
    """Tests for price/volume divergence."""

    def test_bearish_volume_divergence(self) -> None:
        result = detect_bearish_volume_divergence(100.0, 105.0, 5000.0, 3000.0)
        assert result is not None
        assert result.kind == DivergenceKind.BEARISH_VOLUME

    def test_bullish_volume_divergence(self) -> None:
        result = detect_bullish_volume_divergence(100.0, 95.0, 3000.0, 5000.0)
        assert result is not None
        assert result.kind == DivergenceKind.BULLISH_VOLUME

    def test_lower_low_on_lower_volume_is_not_divergence(self) -> None:
        assert detect_bullish_volume_divergence(100.0, 95.0, 5000.0, 3000.0) is None
