"""Signal scanner -- polls candles and tickers for every perpetual and analyzes them.

Uses REST polling in bounded concurrent batches. Each batch is awaited as a
whole before its results are merged, so the dashboard never sees a half-merged
batch. A failure for one symbol is logged and skipped without aborting the
batch.

Switching timeframe clears all results and restarts polling immediately;
batches still in flight for the old timeframe are discarded.
"""

import asyncio
import time
from collections.abc import Callable

from screener.config import ScannerSettings
from screener.exchange.binance_client import BinanceFuturesClient
from screener.logging import get_logger, symbol_context
from screener.models import Timeframe
from screener.signals.engine import SignalEngine, SymbolAnalysis

logger = get_logger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class SignalScanner:
    """Keeps the latest SymbolAnalysis for every scanned symbol.

    Args:
        exchange: Public-data exchange client.
        engine: Per-symbol analysis pipeline.
        settings: Batch size, delays, polling intervals and symbol cap.
        clock: Returns the current instant in epoch ms; injected for tests.
    """

    def __init__(
        self,
        exchange: BinanceFuturesClient,
        engine: SignalEngine,
        settings: ScannerSettings,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._exchange = exchange
        self._engine = engine
        self._settings = settings
        self._clock = clock
        self._timeframe = Timeframe.parse(settings.timeframe)
        self._results: dict[str, SymbolAnalysis] = {}
        self._last_updated: dict[str, int] = {}
        self._generation = 0
        self._running = False
        self._task: asyncio.Task | None = None  # type: ignore[type-arg]
        self._last_poll_started: int | None = None
        self._last_poll_completed: int | None = None
        self._last_error: str | None = None
        self._failed_last_poll = 0

    @property
    def timeframe(self) -> Timeframe:
        return self._timeframe

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def poll_interval(self) -> float:
        """Seconds between polls: fast for 15m candles, slow otherwise."""
        if self._timeframe == Timeframe.M15:
            return self._settings.poll_interval_fast
        return self._settings.poll_interval_slow

    async def start(self) -> None:
        """Begin polling in the background."""
        if self._running:
            logger.warning("signal_scanner_already_running")
            return
        self._running = True
        self._task = asyncio.create_task(self._stream_loop())
        logger.info(
            "signal_scanner_started",
            timeframe=self._timeframe.value,
            poll_interval=self.poll_interval,
        )

    async def stop(self) -> None:
        """Stop polling; no further batches are scheduled."""
        self._running = False
        await self._cancel_task()
        logger.info("signal_scanner_stopped")

    async def _cancel_task(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def set_timeframe(self, timeframe: Timeframe | str) -> None:
        """Switch timeframe, drop every result and restart polling.

        Raises:
            UnsupportedTimeframeError: If ``timeframe`` is not 15m, 4h or 1d.
        """
        new_timeframe = Timeframe.parse(timeframe)
        if new_timeframe == self._timeframe:
            return

        self._generation += 1
        self._timeframe = new_timeframe
        self._results = {}
        self._last_updated = {}
        logger.info("signal_scanner_timeframe_changed", timeframe=new_timeframe.value)

        if self._running:
            await self._cancel_task()
            self._task = asyncio.create_task(self._stream_loop())

    async def _stream_loop(self) -> None:
        """Main polling loop: scan all symbols, then sleep for the poll interval."""
        while self._running:
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self._last_error = str(e)
                logger.warning("scanner_poll_error", exc_info=True)
            if self._running:
                await asyncio.sleep(self.poll_interval)

    async def poll_once(self) -> int:
        """Scan every perpetual symbol once in batches.

        Returns:
            Number of symbols analyzed successfully.
        """
        generation = self._generation
        timeframe = self._timeframe
        self._last_poll_started = self._clock()

        symbols = await self._exchange.fetch_perpetual_symbols(
            limit=self._settings.max_symbols
        )
        batch_size = max(1, self._settings.batch_size)
        batches = [symbols[i:i + batch_size] for i in range(0, len(symbols), batch_size)]

        analyzed = 0
        failed = 0
        for n, batch in enumerate(batches):
            outcomes = await asyncio.gather(
                *(self._process_symbol(symbol, timeframe) for symbol in batch)
            )
            if generation != self._generation:
                logger.info("scanner_poll_superseded", timeframe=timeframe.value)
                return analyzed

            merged_at = self._clock()
            for symbol, outcome in zip(batch, outcomes):
                if outcome is None:
                    failed += 1
                    continue
                self._results[symbol] = outcome
                self._last_updated[symbol] = merged_at
                analyzed += 1

            logger.debug(
                "scanner_batch_merged",
                batch=n + 1,
                batches=len(batches),
                size=len(batch),
            )
            if n < len(batches) - 1 and self._settings.batch_delay > 0:
                await asyncio.sleep(self._settings.batch_delay)

        self._last_poll_completed = self._clock()
        self._failed_last_poll = failed
        self._last_error = None
        logger.info(
            "scanner_poll_completed",
            timeframe=timeframe.value,
            symbols=len(symbols),
            analyzed=analyzed,
            skipped=failed,
        )
        return analyzed

    async def _process_symbol(
        self, symbol: str, timeframe: Timeframe
    ) -> SymbolAnalysis | None:
        """Fetch and analyze one symbol. Any failure yields None."""
        with symbol_context(symbol, timeframe.value):
            return await self._analyze_symbol(symbol, timeframe)

    async def _analyze_symbol(
        self, symbol: str, timeframe: Timeframe
    ) -> SymbolAnalysis | None:
        try:
            # Both fetches always settle, so a second failure is never left unretrieved
            candles, ticker = await asyncio.gather(
                self._exchange.fetch_candles(
                    symbol, timeframe, limit=self._settings.candle_limit
                ),
                self._exchange.fetch_ticker_24h(symbol),
                return_exceptions=True,
            )
            for result in (candles, ticker):
                if isinstance(result, BaseException):
                    raise result
            return self._engine.analyze(symbol, candles, ticker, timeframe, self._clock())
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(
                "symbol_fetch_failed",
                symbol=symbol,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

    def get_results(self) -> list[SymbolAnalysis]:
        """Return all current analyses sorted by symbol."""
        return [self._results[s] for s in sorted(self._results)]

    def get_result(self, symbol: str) -> SymbolAnalysis | None:
        return self._results.get(symbol)

    def get_last_updated(self) -> dict[str, int]:
        """Epoch-ms timestamp of each symbol's latest merge."""
        return dict(self._last_updated)

    def get_status(self) -> dict:
        """Status summary for the dashboard."""
        return {
            "running": self._running,
            "timeframe": self._timeframe.value,
            "poll_interval": self.poll_interval,
            "symbols": len(self._results),
            "last_poll_started": self._last_poll_started,
            "last_poll_completed": self._last_poll_completed,
            "failed_last_poll": self._failed_last_poll,
            "last_error": self._last_error,
        }
