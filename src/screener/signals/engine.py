"""Per-symbol analysis: runs every indicator and detector over one candle window.

The SignalEngine is the single parameterized pipeline:
1. Computes EMA14/70/200 and RSI with the configured periods
2. Resolves the active and previous session at the injected reference instant
3. Runs trend, breakout, tested-level, top/bottom and divergence detectors
4. Runs the four composite detectors and the zone classifier
5. Assembles a SymbolAnalysis record for the dashboard

Insufficient data never raises: a symbol with too few candles yields None and
every detector degrades to its own "no signal" value.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from screener.config import IndicatorSettings
from screener.logging import get_logger
from screener.models import Candle, Ticker24h, Timeframe, VolumeColor
from screener.signals.composite import (
    detect_bearish_collapse,
    detect_bearish_to_bullish,
    detect_bullish_spike,
    detect_bullish_to_bearish,
)
from screener.signals.divergence import (
    detect_bearish_divergence,
    detect_bearish_volume_divergence,
    detect_bullish_divergence,
    detect_bullish_volume_divergence,
)
from screener.signals.indicators import (
    calculate_ema,
    calculate_rsi,
    ema_gap_percent,
    ema_inside_range,
    last_value,
)
from screener.signals.models import (
    BottomPatterns,
    BreakoutFlags,
    Divergence,
    InsideRangeRecord,
    RSIRangeSummary,
    SignalResult,
    TopPatterns,
    TrendResult,
)
from screener.signals.patterns import (
    detect_bottom_patterns,
    detect_breakouts,
    detect_engulfing,
    detect_tested_prev_high,
    detect_tested_prev_low,
    detect_top_patterns,
    highest_volume_color,
    is_ema_bounce,
    is_volume_spike,
    previous_candle_color,
    touched_level_in_window,
    volume_color,
)
from screener.signals.sessions import (
    DailyCutover,
    SessionWindow,
    get_sessions,
    last_n_session_start_times,
    recent_session_highs,
    recent_session_lows,
)
from screener.signals.trend import get_main_trend
from screener.signals.zones import classify_zone, get_recent_rsi_diff

logger = get_logger(__name__)


@dataclass
class SymbolAnalysis:
    """One dashboard row: every indicator and detector result for a symbol."""

    symbol: str
    timeframe: Timeframe
    main_trend: TrendResult | None
    session: SessionWindow

    breakouts: BreakoutFlags
    tested_prev_high: bool
    tested_prev_low: bool
    top_patterns: TopPatterns
    bottom_patterns: BottomPatterns
    prev_closed_green: bool | None
    prev_closed_red: bool | None

    bullish_reversal: SignalResult
    bearish_reversal: SignalResult
    bullish_spike: SignalResult
    bearish_collapse: SignalResult

    rsi: list[float | None]
    latest_rsi: float | None
    rsi_summary: RSIRangeSummary | None
    primary_signal_text: str

    gap: float | None
    gap1: float | None
    ema14_inside_results: list[InsideRangeRecord]
    ema14_bounce: bool
    ema70_bounce: bool
    ema200_bounce: bool
    touched_ema200_today: bool
    gap_from_low_to_ema200: float | None
    gap_from_high_to_ema200: float | None

    bearish_divergence: Divergence | None
    bullish_divergence: Divergence | None
    bearish_volume_divergence: Divergence | None
    bullish_volume_divergence: Divergence | None
    highest_volume_color_prev: VolumeColor | None
    is_volume_spike: bool
    has_bullish_engulfing: bool
    has_bearish_engulfing: bool

    current_price: float
    price_24h_ago: float
    price_change_percent: float
    is_up: bool
    candles: list[Candle] = field(default_factory=list, repr=False)

    @property
    def pump_strength(self) -> float | None:
        return self.rsi_summary.pump_strength if self.rsi_summary else None

    @property
    def dump_strength(self) -> float | None:
        return self.rsi_summary.dump_strength if self.rsi_summary else None

    @property
    def pump_direction(self) -> str | None:
        return self.rsi_summary.direction.value if self.rsi_summary else None

    @property
    def ema14_inside(self) -> bool:
        return any(r.inside for r in self.ema14_inside_results)

    def to_dict(self) -> dict:
        """JSON-ready representation served by the dashboard API."""
        trend = self.main_trend
        return {
            "symbol": self.symbol,
            "timeframe": self.timeframe.value,
            "main_trend": None
            if trend is None
            else {
                "trend": trend.trend.value,
                "type": trend.level_type.value,
                "crossover_price": trend.crossover_price,
                "breakout": trend.breakout,
                "is_near": trend.is_near,
                "is_doji_after_breakout": trend.is_doji_after_breakout,
            },
            "session": {
                "session_start": self.session.session_start,
                "session_end": self.session.session_end,
                "prev_session_start": self.session.prev_session_start,
                "prev_session_end": self.session.prev_session_end,
            },
            "bullish_breakout": self.breakouts.bullish,
            "bearish_breakout": self.breakouts.bearish,
            "failed_bullish_break": self.breakouts.failed_bullish,
            "failed_bearish_break": self.breakouts.failed_bearish,
            "breakout_failure": self.breakouts.failure,
            "tested_prev_high": self.tested_prev_high,
            "tested_prev_low": self.tested_prev_low,
            "is_double_top": self.top_patterns.double_top,
            "is_descending_top": self.top_patterns.descending_top,
            "is_double_top_failure": self.top_patterns.double_top_failure,
            "is_double_bottom": self.bottom_patterns.double_bottom,
            "is_ascending_bottom": self.bottom_patterns.ascending_bottom,
            "is_double_bottom_failure": self.bottom_patterns.double_bottom_failure,
            "prev_closed_green": self.prev_closed_green,
            "prev_closed_red": self.prev_closed_red,
            "bullish_reversal": self.bullish_reversal.to_dict(),
            "bearish_reversal": self.bearish_reversal.to_dict(),
            "bullish_spike": self.bullish_spike.to_dict(),
            "bearish_collapse": self.bearish_collapse.to_dict(),
            "latest_rsi": self.latest_rsi,
            "pump_strength": self.pump_strength,
            "dump_strength": self.dump_strength,
            "pump_direction": self.pump_direction,
            "primary_signal_text": self.primary_signal_text,
            "gap": self.gap,
            "gap1": self.gap1,
            "ema14_inside": self.ema14_inside,
            "ema14_inside_results": [
                {
                    "candle_index": r.candle_index,
                    "inside": r.inside,
                    "ema14": r.fast,
                    "ema70": r.mid,
                    "ema200": r.slow,
                }
                for r in self.ema14_inside_results
            ],
            "ema14_bounce": self.ema14_bounce,
            "ema70_bounce": self.ema70_bounce,
            "ema200_bounce": self.ema200_bounce,
            "touched_ema200_today": self.touched_ema200_today,
            "gap_from_low_to_ema200": self.gap_from_low_to_ema200,
            "gap_from_high_to_ema200": self.gap_from_high_to_ema200,
            "bearish_divergence": _divergence_dict(self.bearish_divergence),
            "bullish_divergence": _divergence_dict(self.bullish_divergence),
            "bearish_volume_divergence": _divergence_dict(self.bearish_volume_divergence),
            "bullish_volume_divergence": _divergence_dict(self.bullish_volume_divergence),
            "highest_volume_color_prev": self.highest_volume_color_prev.value
            if self.highest_volume_color_prev
            else None,
            "is_volume_spike": self.is_volume_spike,
            "has_bullish_engulfing": self.has_bullish_engulfing,
            "has_bearish_engulfing": self.has_bearish_engulfing,
            "current_price": self.current_price,
            "price_24h_ago": self.price_24h_ago,
            "price_change_percent": self.price_change_percent,
            "is_up": self.is_up,
        }


def _divergence_dict(value: Divergence | None) -> dict:
    return value.to_dict() if value is not None else {"divergence": False}


def attach_derived_fields(candles: Sequence[Candle], rsi: Sequence[float | None]) -> list[Candle]:
    """Return candles carrying their RSI reading and volume colour."""
    return [
        c.with_derived(rsi[i] if i < len(rsi) else None, volume_color(c))
        for i, c in enumerate(candles)
    ]


def _pct_from(value: float | None, reference: float | None) -> float | None:
    if value is None or reference is None or reference == 0:
        return None
    return (value - reference) / reference * 100


def _indices_in(candles: Sequence[Candle], start: int, end: int) -> list[int]:
    return [i for i, c in enumerate(candles) if start <= c.timestamp_ms < end]


class SignalEngine:
    """Runs the full indicator and detector pipeline for one symbol at a time.

    Stateless between calls, so a single instance is shared across all
    symbols and batches.

    Args:
        settings: Indicator periods, tolerances and session definition.
        min_candles: Symbols with fewer candles are skipped.
    """

    def __init__(self, settings: IndicatorSettings, min_candles: int = 14) -> None:
        self._settings = settings
        self._min_candles = min_candles
        self._cutover = DailyCutover(
            utc_offset_hours=settings.session_utc_offset_hours,
            cutover_hour=settings.session_cutover_hour,
            end_hour=settings.session_end_hour,
            end_minute=settings.session_end_minute,
        )

    @property
    def cutover(self) -> DailyCutover:
        return self._cutover

    def analyze(
        self,
        symbol: str,
        candles: Sequence[Candle],
        ticker: Ticker24h,
        timeframe: Timeframe,
        now_ms: int,
    ) -> SymbolAnalysis | None:
        """Analyze one symbol's candle window.

        Args:
            symbol: Exchange symbol, e.g. "BTC/USDT:USDT".
            candles: Candles ordered by ascending timestamp.
            ticker: 24h ticker snapshot for the symbol.
            timeframe: Timeframe the candles were fetched at.
            now_ms: Reference instant used for session resolution.

        Returns:
            SymbolAnalysis, or None when there are fewer than ``min_candles``
            candles.
        """
        if len(candles) < self._min_candles:
            logger.debug(
                "symbol_skipped_insufficient_candles",
                symbol=symbol,
                candles=len(candles),
                required=self._min_candles,
            )
            return None

        s = self._settings
        opens = [c.open for c in candles]
        highs = [c.high for c in candles]
        lows = [c.low for c in candles]
        closes = [c.close for c in candles]
        volumes = [c.volume for c in candles]

        ema14 = calculate_ema(closes, s.ema_short_period)
        ema70 = calculate_ema(closes, s.ema_mid_period)
        ema200 = calculate_ema(closes, s.ema_long_period)
        rsi = calculate_rsi(closes, s.rsi_period)
        enriched = attach_derived_fields(candles, rsi)

        session = get_sessions(timeframe, now_ms, self._cutover)
        today_idx = _indices_in(enriched, session.session_start, session.session_end)
        prev_idx = _indices_in(enriched, session.prev_session_start, session.prev_session_end)
        today = [enriched[i] for i in today_idx]
        prev = [enriched[i] for i in prev_idx]

        today_high_i = max(today_idx, key=lambda i: highs[i]) if today_idx else None
        today_low_i = min(today_idx, key=lambda i: lows[i]) if today_idx else None
        prev_high_i = max(prev_idx, key=lambda i: highs[i]) if prev_idx else None
        prev_low_i = min(prev_idx, key=lambda i: lows[i]) if prev_idx else None

        today_high = highs[today_high_i] if today_high_i is not None else None
        today_low = lows[today_low_i] if today_low_i is not None else None
        prev_high = highs[prev_high_i] if prev_high_i is not None else None
        prev_low = lows[prev_low_i] if prev_low_i is not None else None

        main_trend = get_main_trend(
            ema70,
            ema200,
            closes,
            opens,
            highs,
            lows,
            tolerance_percent=s.trend_tolerance_percent,
            doji_tolerance_ratio=s.doji_tolerance_ratio,
        )
        breakouts = detect_breakouts(today_high, today_low, prev_high, prev_low)

        starts = last_n_session_start_times(s.session_history, now_ms, self._cutover)
        top_patterns = detect_top_patterns(recent_session_highs(enriched, starts))
        bottom_patterns = detect_bottom_patterns(recent_session_lows(enriched, starts))

        def rsi_at(i: int | None) -> float | None:
            return rsi[i] if i is not None and i < len(rsi) else None

        def volume_at(i: int | None) -> float | None:
            return volumes[i] if i is not None else None

        engulfing = detect_engulfing(today)
        composite_args = (ema14, ema70, ema200, rsi, lows, highs, closes, opens)

        last = enriched[-1]
        last_ema200 = last_value(ema200)
        margin = s.ema_touch_margin
        prev_color = previous_candle_color(enriched)
        summary = get_recent_rsi_diff(rsi, s.zone_lookback)

        analysis = SymbolAnalysis(
            symbol=symbol,
            timeframe=timeframe,
            main_trend=main_trend,
            session=session,
            breakouts=breakouts,
            tested_prev_high=detect_tested_prev_high(prev_high, today_high),
            tested_prev_low=detect_tested_prev_low(prev_low, today_low),
            top_patterns=top_patterns,
            bottom_patterns=bottom_patterns,
            prev_closed_green=None if prev_color is None else prev_color == VolumeColor.GREEN,
            prev_closed_red=None if prev_color is None else prev_color == VolumeColor.RED,
            bullish_reversal=detect_bearish_to_bullish(*composite_args),
            bearish_reversal=detect_bullish_to_bearish(*composite_args),
            bullish_spike=detect_bullish_spike(
                *composite_args, breakouts.bullish, breakouts.bearish
            ),
            bearish_collapse=detect_bearish_collapse(
                *composite_args, breakouts.bullish, breakouts.bearish
            ),
            rsi=list(rsi),
            latest_rsi=last_value(rsi),
            rsi_summary=summary,
            primary_signal_text=classify_zone(summary),
            gap=ema_gap_percent(ema14, ema70),
            gap1=ema_gap_percent(ema70, ema200),
            ema14_inside_results=ema_inside_range(
                ema14, ema70, ema200, s.inside_range_lookback
            ),
            ema14_bounce=is_ema_bounce(last, last_value(ema14), margin),
            ema70_bounce=is_ema_bounce(last, last_value(ema70), margin),
            ema200_bounce=is_ema_bounce(last, last_ema200, margin),
            touched_ema200_today=touched_level_in_window(
                today, [ema200[i] for i in today_idx]
            ),
            gap_from_low_to_ema200=_pct_from(today_low, last_ema200),
            gap_from_high_to_ema200=_pct_from(today_high, last_ema200),
            bearish_divergence=detect_bearish_divergence(
                prev_high, today_high, rsi_at(prev_high_i), rsi_at(today_high_i)
            ),
            bullish_divergence=detect_bullish_divergence(
                prev_low, today_low, rsi_at(prev_low_i), rsi_at(today_low_i)
            ),
            bearish_volume_divergence=detect_bearish_volume_divergence(
                prev_high, today_high, volume_at(prev_high_i), volume_at(today_high_i)
            ),
            bullish_volume_divergence=detect_bullish_volume_divergence(
                prev_low, today_low, volume_at(prev_low_i), volume_at(today_low_i)
            ),
            highest_volume_color_prev=highest_volume_color(prev),
            is_volume_spike=is_volume_spike(
                volumes, s.volume_spike_lookback, s.volume_spike_multiplier
            ),
            has_bullish_engulfing=engulfing.bullish,
            has_bearish_engulfing=engulfing.bearish,
            current_price=ticker.last_price,
            price_24h_ago=ticker.open_price,
            price_change_percent=ticker.price_change_percent,
            is_up=ticker.price_change_percent > 0,
            candles=enriched,
        )

        logger.debug(
            "symbol_analyzed",
            symbol=symbol,
            timeframe=timeframe.value,
            trend=main_trend.trend.value if main_trend else None,
            zone=analysis.primary_signal_text,
            bullish_reversal=analysis.bullish_reversal.is_signal,
            bearish_reversal=analysis.bearish_reversal.is_signal,
            bullish_spike=analysis.bullish_spike.is_signal,
            bearish_collapse=analysis.bearish_collapse.is_signal,
        )
        return analysis

