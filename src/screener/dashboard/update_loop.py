"""Periodic WebSocket update loop for real-time dashboard refresh.

Renders the signals table for each distinct client query plus the shared
summary panel, and pushes them as OOB-swap HTML fragments.
"""

from __future__ import annotations

import asyncio

import structlog
from fastapi import FastAPI
from fastapi.templating import Jinja2Templates

from screener.dashboard.routes.pages import table_context
from screener.dashboard.views import TableQuery

log = structlog.get_logger(__name__)


def render_fragments(app: FastAPI, query: TableQuery) -> str:
    """Render the table and summary partials for one query as OOB-swap divs."""
    templates: Jinja2Templates = app.state.templates
    context = table_context(app.state.scanner, query)
    env = templates.env

    fragments = []
    html = env.get_template("partials/signals_table.html").render(**context)
    fragments.append(f'<div id="signals-table-panel" hx-swap-oob="true">{html}</div>')

    html = env.get_template("partials/summary.html").render(**context)
    fragments.append(f'<div id="summary-panel" hx-swap-oob="true">{html}</div>')
    return "\n".join(fragments)


async def dashboard_update_loop(app: FastAPI) -> None:
    """Periodically render and broadcast dashboard partials via WebSocket.

    Runs until cancelled. Rendering errors are logged and the loop carries on.
    """
    update_interval = getattr(app.state, "update_interval", 5)
    log.info("dashboard_update_loop_started", interval=update_interval)

    while True:
        try:
            await asyncio.sleep(update_interval)

            hub = app.state.hub
            if not hub.connections or app.state.scanner is None:
                continue

            await hub.broadcast(lambda query: render_fragments(app, query))

        except asyncio.CancelledError:
            log.info("dashboard_update_loop_cancelled")
            break
        except Exception:
            log.warning("dashboard_update_loop_error", exc_info=True)
            await asyncio.sleep(1)
