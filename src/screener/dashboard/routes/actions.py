"""POST endpoints for dashboard controls."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from screener.dashboard.routes.pages import table_context
from screener.dashboard.views import TableQuery
from screener.exceptions import UnsupportedTimeframeError

log = structlog.get_logger(__name__)

router = APIRouter()


@router.post("/timeframe", response_class=HTMLResponse)
async def change_timeframe(request: Request) -> HTMLResponse:
    """Switch the scanner timeframe and return the (now empty) signals table partial."""
    templates: Jinja2Templates = request.app.state.templates
    scanner = request.app.state.scanner

    form = await request.form()
    error = ""
    try:
        await scanner.set_timeframe(str(form.get("timeframe", "")).strip())
        log.info("timeframe_changed_via_dashboard", timeframe=scanner.timeframe.value)
    except UnsupportedTimeframeError as e:
        error = str(e)
        log.error("timeframe_change_rejected", error=error)

    context = table_context(scanner, TableQuery.from_mapping(form))
    context["error"] = error
    return templates.TemplateResponse(request, "partials/signals_table.html", context)
