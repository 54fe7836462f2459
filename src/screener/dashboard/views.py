"""Table view logic for the dashboard: search, filter chips, sorting and summary counts.

Pure functions over SymbolAnalysis rows so the JSON API, the HTML partials
and the WebSocket push all agree on what the table shows.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field

from screener.models import VolumeColor
from screener.signals.engine import SymbolAnalysis
from screener.signals.models import TrendDirection
from screener.signals.patterns import did_drop_from_peak, did_recover_from_low
from screener.signals.zones import ZONE_LABELS

Predicate = Callable[[SymbolAnalysis], bool]


def _trend_is(direction: TrendDirection) -> Predicate:
    return lambda a: a.main_trend is not None and a.main_trend.trend == direction


#: Trend filter chips: key -> (label, predicate), in display order.
TREND_FILTERS: dict[str, tuple[str, Predicate]] = {
    "bullish_trend": ("Bullish Trend", _trend_is(TrendDirection.BULLISH)),
    "bearish_trend": ("Bearish Trend", _trend_is(TrendDirection.BEARISH)),
    "bullish_reversal": ("Bullish Reversal", lambda a: a.bullish_reversal.is_signal),
    "bearish_reversal": ("Bearish Reversal", lambda a: a.bearish_reversal.is_signal),
    "bullish_spike": ("Bullish Spike", lambda a: a.bullish_spike.is_signal),
    "bearish_collapse": ("Bearish Collapse", lambda a: a.bearish_collapse.is_signal),
    "breakout_failure": ("Breakout Failure", lambda a: a.breakouts.failure),
    "bullish_breakout": ("Bullish Breakout", lambda a: a.breakouts.bullish),
    "bearish_breakout": ("Bearish Breakout", lambda a: a.breakouts.bearish),
    "tested_prev_high": ("Tested Prev High", lambda a: a.tested_prev_high),
    "tested_prev_low": ("Tested Prev Low", lambda a: a.tested_prev_low),
    "ema14_inside": ("EMA14 Inside", lambda a: a.ema14_inside),
}

SIGNAL_FILTERS = ZONE_LABELS


def dropped_from_peak(row: SymbolAnalysis) -> bool:
    """Bullish symbol whose 24h change fell at least 5 points below +10%."""
    return _trend_is(TrendDirection.BULLISH)(row) and did_drop_from_peak(
        10, row.price_change_percent, 5
    )


def recovered_from_low(row: SymbolAnalysis) -> bool:
    """Bearish symbol whose 24h change recovered at least 10 points above -40%."""
    return _trend_is(TrendDirection.BEARISH)(row) and did_recover_from_low(
        -40, row.price_change_percent, 10
    )


def filter_rows(
    rows: Iterable[SymbolAnalysis],
    search: str = "",
    trend_filter: str | None = None,
    signal_filter: str | None = None,
    favorites: set[str] | None = None,
    only_favorites: bool = False,
) -> list[SymbolAnalysis]:
    """Apply search, favorites, trend chip and zone chip filters.

    Unknown trend filter keys are ignored rather than emptying the table.
    """
    term = search.strip().lower()
    favorites = favorites or set()
    predicate = TREND_FILTERS.get(trend_filter)[1] if trend_filter in TREND_FILTERS else None
    wanted_zone = signal_filter.strip().upper() if signal_filter else None

    result = []
    for row in rows:
        if term and term not in row.symbol.lower():
            continue
        if only_favorites and row.symbol not in favorites:
            continue
        if predicate is not None and not predicate(row):
            continue
        if wanted_zone and row.primary_signal_text.strip().upper() != wanted_zone:
            continue
        result.append(row)
    return result


def _prev_close_score(row: SymbolAnalysis) -> int:
    if row.prev_closed_green:
        return 1
    if row.prev_closed_red:
        return -1
    return 0


_TREND_ORDER = {TrendDirection.BULLISH: 1, TrendDirection.BEARISH: 2}

#: Numeric/string sort keys. None sorts last in either direction.
_VALUE_SORTS: dict[str, Callable[[SymbolAnalysis], object]] = {
    "symbol": lambda a: a.symbol,
    "price_change_percent": lambda a: a.price_change_percent,
    "current_price": lambda a: a.current_price,
    "latest_rsi": lambda a: a.latest_rsi,
    "pump_strength": lambda a: a.pump_strength,
    "dump_strength": lambda a: a.dump_strength,
    "gap": lambda a: a.gap,
    "gap1": lambda a: a.gap1,
    "gap_from_low_to_ema200": lambda a: a.gap_from_low_to_ema200,
    "gap_from_high_to_ema200": lambda a: a.gap_from_high_to_ema200,
    "signal": lambda a: a.primary_signal_text,
    "main_trend": lambda a: _TREND_ORDER.get(a.main_trend.trend) if a.main_trend else None,
    "prev_close": _prev_close_score,
}

#: Boolean sort keys. Ascending puts True first.
_BOOL_SORTS: dict[str, Predicate] = {
    "touched_ema200_today": lambda a: a.touched_ema200_today,
    "ema14_bounce": lambda a: a.ema14_bounce,
    "ema70_bounce": lambda a: a.ema70_bounce,
    "ema200_bounce": lambda a: a.ema200_bounce,
    "is_volume_spike": lambda a: a.is_volume_spike,
    "bearish_divergence": lambda a: a.bearish_divergence is not None,
    "bullish_divergence": lambda a: a.bullish_divergence is not None,
    "bearish_volume_divergence": lambda a: a.bearish_volume_divergence is not None,
    "bullish_volume_divergence": lambda a: a.bullish_volume_divergence is not None,
    **{key: pred for key, (_, pred) in TREND_FILTERS.items()},
}

SORT_FIELDS = tuple(_VALUE_SORTS) + tuple(_BOOL_SORTS)


def sort_rows(
    rows: Iterable[SymbolAnalysis], field: str | None, order: str = "asc"
) -> list[SymbolAnalysis]:
    """Sort rows by a table column. Unknown or empty fields keep the input order."""
    rows = list(rows)
    descending = order == "desc"

    if field in _BOOL_SORTS:
        pred = _BOOL_SORTS[field]
        # asc: True first; desc: False first
        return sorted(rows, key=lambda a: pred(a) if descending else not pred(a))

    if field not in _VALUE_SORTS:
        return rows

    key = _VALUE_SORTS[field]
    present = [a for a in rows if key(a) is not None]
    missing = [a for a in rows if key(a) is None]
    present.sort(key=key, reverse=descending)  # type: ignore[arg-type]
    return present + missing


def summarize(rows: Iterable[SymbolAnalysis]) -> dict[str, int]:
    """Counts for the filter chips and the summary panel."""
    rows = list(rows)
    counts = {key: sum(1 for a in rows if pred(a)) for key, (_, pred) in TREND_FILTERS.items()}
    for label in SIGNAL_FILTERS:
        counts[label] = sum(1 for a in rows if a.primary_signal_text == label)
    counts["green_volume"] = sum(
        1 for a in rows if a.highest_volume_color_prev == VolumeColor.GREEN
    )
    counts["red_volume"] = sum(
        1 for a in rows if a.highest_volume_color_prev == VolumeColor.RED
    )
    counts["green_24h"] = sum(1 for a in rows if a.price_change_percent > 0)
    counts["red_24h"] = sum(1 for a in rows if a.price_change_percent < 0)
    counts["total"] = len(rows)
    return counts


def _parse_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def parse_favorites(raw: object) -> frozenset[str]:
    """Favorites come from the browser's localStorage as a list or a comma-separated string."""
    if not raw:
        return frozenset()
    items = raw.split(",") if isinstance(raw, str) else raw
    return frozenset(str(s).strip() for s in items if str(s).strip())  # type: ignore[union-attr]


@dataclass(frozen=True)
class TableQuery:
    """Everything that decides which rows a client sees and in what order."""

    search: str = ""
    trend_filter: str | None = None
    signal_filter: str | None = None
    sort: str | None = None
    order: str = "asc"
    favorites: frozenset[str] = field(default_factory=frozenset)
    only_favorites: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> "TableQuery":
        """Build a query from form fields, query params or a WebSocket message."""
        order = str(data.get("order") or "asc").lower()
        return cls(
            search=str(data.get("search") or ""),
            trend_filter=str(data["trend_filter"]) if data.get("trend_filter") else None,
            signal_filter=str(data["signal_filter"]) if data.get("signal_filter") else None,
            sort=str(data["sort"]) if data.get("sort") else None,
            order=order if order in ("asc", "desc") else "asc",
            favorites=parse_favorites(data.get("favorites")),
            only_favorites=_parse_bool(data.get("only_favorites", False)),
        )

    def apply(self, rows: Iterable[SymbolAnalysis]) -> list[SymbolAnalysis]:
        filtered = filter_rows(
            rows,
            search=self.search,
            trend_filter=self.trend_filter,
            signal_filter=self.signal_filter,
            favorites=set(self.favorites),
            only_favorites=self.only_favorites,
        )
        return sort_rows(filtered, self.sort, self.order)

    def summary_rows(self, rows: Iterable[SymbolAnalysis]) -> list[SymbolAnalysis]:
        """Rows the summary counts are taken over: search and favorites only."""
        return filter_rows(
            rows,
            search=self.search,
            favorites=set(self.favorites),
            only_favorites=self.only_favorites,
        )
