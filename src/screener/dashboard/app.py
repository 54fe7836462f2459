"""FastAPI dashboard application factory: templates, filters, routers and the WebSocket hub."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Any

from fastapi import FastAPI
from fastapi.templating import Jinja2Templates

from screener.dashboard.routes import actions, api, pages, ws
from screener.dashboard.routes.ws import DashboardHub

TEMPLATES_DIR = Path(__file__).parent / "templates"

MISSING = "–"


def _format_number(value: float | None, digits: int = 2) -> str:
    return MISSING if value is None else f"{value:.{digits}f}"


def _format_percent(value: float | None) -> str:
    """Signed percentage, e.g. ``+4.08%``."""
    return MISSING if value is None else f"{value:+.2f}%"


def _format_price(value: float | None) -> str:
    """Price with precision scaled to its magnitude; sub-dollar prices keep 8 decimals."""
    if value is None:
        return MISSING
    if value >= 1000:
        return f"{value:,.2f}"
    if value >= 1:
        return f"{value:.4f}"
    return f"{value:.8f}".rstrip("0")


def _age(value: int | None, now_ms: int | None = None) -> str:
    """Compact age of an epoch-ms timestamp: ``12s``, ``4m``, ``2h``, ``3d``."""
    if value is None:
        return MISSING
    now_ms = int(time.time() * 1000) if now_ms is None else now_ms
    seconds = max(0, (now_ms - value) // 1000)
    for unit, size in (("d", 86400), ("h", 3600), ("m", 60)):
        if seconds >= size:
            return f"{seconds // size}{unit}"
    return f"{seconds}s"


def _register_filters(templates: Jinja2Templates) -> None:
    templates.env.filters.update(
        format_number=_format_number,
        format_percent=_format_percent,
        format_price=_format_price,
        age=_age,
    )


def create_dashboard_app(lifespan: Any = None, scanner: Any = None) -> FastAPI:
    """Create the dashboard application.

    Args:
        lifespan: Async context manager that starts and stops the scanner
            (see main.py). Omitted in tests.
        scanner: SignalScanner serving the table. main.py's lifespan sets it
            on startup when not given here.
    """
    app = FastAPI(title="Crypto Signal Screener", lifespan=lifespan)

    templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
    _register_filters(templates)
    app.state.templates = templates
    app.state.hub = DashboardHub()
    app.state.scanner = scanner

    app.include_router(pages.router)
    app.include_router(api.router, prefix="/api")
    app.include_router(actions.router, prefix="/actions")
    app.include_router(ws.router)

    return app
