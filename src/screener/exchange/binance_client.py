"""Binance USDT-M futures client via ccxt async.

Wraps ccxt.async_support.binanceusdm for the public endpoints the screener
needs: market discovery, OHLCV candles and 24h tickers. Wire data is
normalized here into Candle and Ticker24h so the signal layer only ever sees
floats.
"""

import ccxt.async_support as ccxt_async

from screener.config import ExchangeSettings
from screener.exceptions import ExchangeDataError
from screener.logging import get_logger
from screener.models import Candle, Ticker24h, Timeframe

logger = get_logger(__name__)


def _to_float(value: object, field: str, symbol: str) -> float:
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as e:
        raise ExchangeDataError(f"{symbol}: invalid {field} {value!r}") from e


def parse_ohlcv(symbol: str, rows: list[list]) -> list[Candle]:
    """Convert ccxt OHLCV rows ``[ts, o, h, l, c, v]`` to Candles sorted by timestamp."""
    candles = []
    for row in rows:
        if len(row) < 6:
            raise ExchangeDataError(f"{symbol}: malformed OHLCV row {row!r}")
        candles.append(
            Candle(
                timestamp_ms=int(row[0]),
                open=_to_float(row[1], "open", symbol),
                high=_to_float(row[2], "high", symbol),
                low=_to_float(row[3], "low", symbol),
                close=_to_float(row[4], "close", symbol),
                volume=_to_float(row[5], "volume", symbol),
            )
        )
    candles.sort(key=lambda c: c.timestamp_ms)
    return candles


def parse_ticker(symbol: str, ticker: dict) -> Ticker24h:
    """Normalize a ccxt ticker, falling back to Binance's raw numeric strings."""
    info = ticker.get("info") or {}

    last = ticker.get("last")
    if last is None:
        last = info.get("lastPrice")
    open_ = ticker.get("open")
    if open_ is None:
        open_ = info.get("openPrice")
    change = ticker.get("percentage")
    if change is None:
        change = info.get("priceChangePercent")

    return Ticker24h(
        symbol=symbol,
        last_price=_to_float(last, "last price", symbol),
        open_price=_to_float(open_, "open price", symbol),
        price_change_percent=_to_float(change, "price change percent", symbol),
    )


class BinanceFuturesClient:
    """Public-data Binance USDT-M perpetual futures client using ccxt async."""

    def __init__(self, settings: ExchangeSettings) -> None:
        self._settings = settings
        self._exchange = ccxt_async.binanceusdm(
            {
                "enableRateLimit": settings.enable_rate_limit,
                "timeout": settings.timeout_ms,
            }
        )
        self._markets: dict = {}

    @property
    def exchange(self) -> ccxt_async.binanceusdm:
        """Access the underlying ccxt exchange instance."""
        return self._exchange

    async def connect(self) -> None:
        """Initialize connection by loading markets."""
        logger.info("connecting_to_binance_futures")
        self._markets = await self._exchange.load_markets()
        logger.info("binance_futures_connected", market_count=len(self._markets))

    async def close(self) -> None:
        """Release the ccxt aiohttp session. Must be called on shutdown."""
        logger.info("closing_binance_futures_connection")
        await self._exchange.close()
        logger.info("binance_futures_connection_closed")

    async def load_markets(self, reload: bool = False) -> dict:
        self._markets = await self._exchange.load_markets(reload)
        return self._markets

    async def fetch_perpetual_symbols(self, limit: int | None = None) -> list[str]:
        """Return active linear perpetual swaps quoted in the configured currency.

        Args:
            limit: Maximum number of symbols to return, in market order.
        """
        if not self._markets:
            await self.load_markets()

        quote = self._settings.quote_currency
        symbols = [
            symbol
            for symbol, market in self._markets.items()
            if market.get("swap")
            and market.get("linear")
            and market.get("quote") == quote
            and market.get("active", True)
        ]
        if limit is not None:
            symbols = symbols[:limit]
        logger.debug("fetched_perpetual_symbols", count=len(symbols))
        return symbols

    async def fetch_candles(
        self, symbol: str, timeframe: Timeframe, limit: int = 500
    ) -> list[Candle]:
        """Fetch the most recent ``limit`` candles for ``symbol``."""
        rows = await self._exchange.fetch_ohlcv(symbol, timeframe.value, limit=limit)
        return parse_ohlcv(symbol, rows)

    async def fetch_ticker_24h(self, symbol: str) -> Ticker24h:
        """Fetch the 24h rolling ticker for ``symbol``."""
        ticker = await self._exchange.fetch_ticker(symbol)
        return parse_ticker(symbol, ticker)
