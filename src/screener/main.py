"""Entry point for the crypto signal screener.

Wires the exchange client, signal engine and scanner together, optionally
embedding the FastAPI dashboard. When the dashboard is enabled (default),
the scanner and dashboard share a single asyncio event loop via uvicorn's
programmatic API and FastAPI's lifespan context manager.

Handles SIGINT/SIGTERM for graceful shutdown.
"""

import asyncio
import signal
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from screener.config import AppSettings
from screener.exchange.binance_client import BinanceFuturesClient
from screener.logging import get_logger, setup_logging
from screener.market_data.scanner import SignalScanner
from screener.signals.engine import SignalEngine


def _build_components(settings: AppSettings) -> dict[str, Any]:
    """Build the exchange client, signal engine and scanner from settings.

    Does NOT connect to the exchange; that happens in the lifespan
    (dashboard mode) or run() (headless mode).
    """
    exchange_client = BinanceFuturesClient(settings.exchange)
    engine = SignalEngine(settings.indicators, min_candles=settings.scanner.min_candles)
    scanner = SignalScanner(exchange_client, engine, settings.scanner)
    return {
        "exchange_client": exchange_client,
        "engine": engine,
        "scanner": scanner,
    }


def _setup_signal_handlers(scanner: SignalScanner, stopped: asyncio.Event | None = None) -> None:
    """Register SIGINT/SIGTERM to stop the scanner.

    Must be called after the asyncio event loop is running.
    """
    logger = get_logger("screener.main")
    loop = asyncio.get_running_loop()

    def _graceful_handler() -> None:
        logger.info("graceful_shutdown_signal")
        asyncio.create_task(scanner.stop())
        if stopped is not None:
            stopped.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _graceful_handler)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the scanner and dashboard push loop; tear them down in reverse."""
    from screener.dashboard.update_loop import dashboard_update_loop

    logger = get_logger("screener.main")
    settings = app.state.settings
    components = app.state.components

    app.state.scanner = components["scanner"]
    app.state.exchange_client = components["exchange_client"]
    app.state.update_interval = settings.dashboard.update_interval

    await components["exchange_client"].connect()
    await components["scanner"].start()

    update_task = asyncio.create_task(dashboard_update_loop(app))

    logger.info("lifespan_started", timeframe=settings.scanner.timeframe)

    yield

    update_task.cancel()
    try:
        await update_task
    except asyncio.CancelledError:
        pass

    await components["scanner"].stop()
    await components["exchange_client"].close()

    logger.info("signal_screener_stopped")


async def run() -> None:
    """Run the screener, with the dashboard unless DASHBOARD_ENABLED=false."""
    settings = AppSettings()

    setup_logging(settings.log_level, settings.log_format)
    logger = get_logger("screener.main")

    components = _build_components(settings)

    if settings.dashboard.enabled:
        from screener.dashboard.app import create_dashboard_app

        app = create_dashboard_app(lifespan=lifespan)
        app.state.settings = settings
        app.state.components = components

        logger.info(
            "starting_with_dashboard",
            host=settings.dashboard.host,
            port=settings.dashboard.port,
            timeframe=settings.scanner.timeframe,
        )

        config = uvicorn.Config(
            app,
            host=settings.dashboard.host,
            port=settings.dashboard.port,
            log_level="warning",
        )
        server = uvicorn.Server(config)
        await server.serve()
    else:
        stopped = asyncio.Event()
        _setup_signal_handlers(components["scanner"], stopped)

        logger.info(
            "starting_without_dashboard",
            timeframe=settings.scanner.timeframe,
            max_symbols=settings.scanner.max_symbols,
        )

        try:
            await components["exchange_client"].connect()
            await components["scanner"].start()
            await stopped.wait()
        finally:
            await components["scanner"].stop()
            await components["exchange_client"].close()
            logger.info("signal_screener_stopped")


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
