"""Shared test fixtures for the crypto signal screener."""

from collections.abc import Callable, Sequence

import pytest

from screener.config import (
    AppSettings,
    DashboardSettings,
    ExchangeSettings,
    IndicatorSettings,
    ScannerSettings,
)
from screener.models import Candle, Ticker24h
from screener.signals.sessions import HOUR_MS

#: 2024-01-10 12:00 UTC, well inside a daily session that opened at 00:00 UTC.
NOW_MS = 1704888000000
DAY_START_MS = 1704844800000


@pytest.fixture
def mock_settings() -> AppSettings:
    """Return AppSettings with test defaults (no batch delay, dashboard off)."""
    return AppSettings(
        log_level="DEBUG",
        exchange=ExchangeSettings(),
        scanner=ScannerSettings(batch_size=2, batch_delay=0, max_symbols=50),
        indicators=IndicatorSettings(),
        dashboard=DashboardSettings(enabled=False),
    )


def make_candles(
    closes: Sequence[float],
    end_ms: int = NOW_MS,
    step_ms: int = HOUR_MS,
    spread: float = 1.0,
    volume: float = 100.0,
) -> list[Candle]:
    """Build candles ending at ``end_ms`` whose open is the previous close."""
    candles = []
    start = end_ms - (len(closes) - 1) * step_ms
    previous = closes[0]
    for i, close in enumerate(closes):
        open_ = previous
        candles.append(
            Candle(
                timestamp_ms=start + i * step_ms,
                open=open_,
                high=max(open_, close) + spread,
                low=min(open_, close) - spread,
                close=close,
                volume=volume,
            )
        )
        previous = close
    return candles


@pytest.fixture
def candle_factory() -> Callable[..., list[Candle]]:
    return make_candles


@pytest.fixture
def sample_ticker() -> Ticker24h:
    return Ticker24h(
        symbol="BTC/USDT:USDT",
        last_price=105.0,
        open_price=100.0,
        price_change_percent=5.0,
    )
