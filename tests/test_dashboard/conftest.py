"""Dashboard fixtures: hand-built SymbolAnalysis rows and a scanner stand-in."""

from dataclasses import replace
from unittest.mock import AsyncMock, MagicMock

import pytest

from screener.models import Timeframe
from screener.signals.engine import SymbolAnalysis
from screener.signals.models import (
    BottomPatterns,
    BreakoutFlags,
    LevelType,
    NoSignal,
    TopPatterns,
    TrendDirection,
    TrendResult,
)
from screener.signals.sessions import SessionWindow
from screener.signals.zones import NO_DATA


def make_analysis(symbol: str, **overrides) -> SymbolAnalysis:
    """A quiet bullish row with no signals; ``overrides`` replace any field."""
    base = SymbolAnalysis(
        symbol=symbol,
        timeframe=Timeframe.D1,
        main_trend=TrendResult(
            trend=TrendDirection.BULLISH,
            level_type=LevelType.SUPPORT,
            crossover_price=100.0,
            breakout=None,
            is_near=True,
            is_doji_after_breakout=False,
        ),
        session=SessionWindow(0, 85_500_000, -86_400_000, -900_000),
        breakouts=BreakoutFlags(False, False, False, False, False),
        tested_prev_high=False,
        tested_prev_low=False,
        top_patterns=TopPatterns(False, False, False),
        bottom_patterns=BottomPatterns(False, False, False),
        prev_closed_green=True,
        prev_closed_red=False,
        bullish_reversal=NoSignal("no_trigger"),
        bearish_reversal=NoSignal("no_trigger"),
        bullish_spike=NoSignal("no_trigger"),
        bearish_collapse=NoSignal("no_trigger"),
        rsi=[],
        latest_rsi=50.0,
        rsi_summary=None,
        primary_signal_text=NO_DATA,
        gap=None,
        gap1=None,
        ema14_inside_results=[],
        ema14_bounce=False,
        ema70_bounce=False,
        ema200_bounce=False,
        touched_ema200_today=False,
        gap_from_low_to_ema200=None,
        gap_from_high_to_ema200=None,
        bearish_divergence=None,
        bullish_divergence=None,
        bearish_volume_divergence=None,
        bullish_volume_divergence=None,
        highest_volume_color_prev=None,
        is_volume_spike=False,
        has_bullish_engulfing=False,
        has_bearish_engulfing=False,
        current_price=100.0,
        price_24h_ago=100.0,
        price_change_percent=0.0,
        is_up=False,
    )
    return replace(base, **overrides)


@pytest.fixture
def analysis_factory():
    return make_analysis


@pytest.fixture
def sample_rows() -> list[SymbolAnalysis]:
    bearish = TrendResult(
        trend=TrendDirection.BEARISH,
        level_type=LevelType.RESISTANCE,
        crossover_price=50.0,
        breakout=True,
        is_near=False,
        is_doji_after_breakout=False,
    )
    return [
        make_analysis(
            "BTC/USDT:USDT",
            price_change_percent=4.0,
            is_up=True,
            latest_rsi=70.0,
            primary_signal_text="MAX ZONE PUMP",
            breakouts=BreakoutFlags(True, False, False, True, False),
        ),
        make_analysis(
            "ETH/USDT:USDT",
            main_trend=bearish,
            price_change_percent=-2.5,
            latest_rsi=None,
            touched_ema200_today=True,
        ),
        make_analysis(
            "SOL/USDT:USDT",
            main_trend=bearish,
            price_change_percent=-8.0,
            latest_rsi=30.0,
            primary_signal_text="LOWEST ZONE DUMP",
        ),
    ]


@pytest.fixture
def mock_scanner(sample_rows) -> MagicMock:
    """Scanner stand-in serving ``sample_rows``."""
    scanner = MagicMock()
    scanner.get_results = MagicMock(return_value=sample_rows)
    scanner.get_last_updated = MagicMock(return_value={"BTC/USDT:USDT": 1_000})
    scanner.get_status = MagicMock(
        return_value={
            "running": True,
            "timeframe": "1d",
            "poll_interval": 300.0,
            "symbols": len(sample_rows),
            "last_poll_started": None,
            "last_poll_completed": None,
            "failed_last_poll": 0,
            "last_error": None,
        }
    )
    scanner.set_timeframe = AsyncMock()
    scanner.timeframe = Timeframe.H4
    return scanner
