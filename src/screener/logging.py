"""Structured logging for the screener, built on structlog.

Events are snake_case names with keyword context. The scanner analyzes many
symbols concurrently, so per-symbol context travels through
structlog.contextvars (see ``symbol_context``) instead of being passed to
every call.
"""

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

#: Third-party loggers that are chatty at DEBUG/INFO.
_QUIET_LOGGERS = ("ccxt", "uvicorn.access", "httpx")


def _renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def setup_logging(log_level: str = "INFO", log_format: str | None = None) -> None:
    """Route structlog and stdlib logging through one handler.

    Args:
        log_level: Root level name, e.g. "DEBUG".
        log_format: "json" or "console". Falls back to the LOG_FORMAT
            environment variable, then to "console".
    """
    log_format = (log_format or os.environ.get("LOG_FORMAT", "console")).lower()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(log_format),
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


@contextmanager
def symbol_context(symbol: str, timeframe: str) -> Iterator[None]:
    """Tag every event logged inside the block with the symbol being analyzed."""
    structlog.contextvars.bind_contextvars(symbol=symbol, timeframe=timeframe)
    try:
        yield
    finally:
        structlog.contextvars.unbind_contextvars("symbol", "timeframe")


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger with the given name."""
    return structlog.get_logger(name)
