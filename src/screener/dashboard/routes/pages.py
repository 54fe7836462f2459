"""Page routes serving the main dashboard HTML template."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from screener.dashboard.views import (
    SIGNAL_FILTERS,
    TREND_FILTERS,
    TableQuery,
    summarize,
)
from screener.models import Timeframe

log = structlog.get_logger(__name__)

router = APIRouter()


def table_context(scanner, query: TableQuery) -> dict:
    """Template context shared by the full page, the table partial and WebSocket pushes."""
    rows = scanner.get_results()
    return {
        "rows": query.apply(rows),
        "summary": summarize(query.summary_rows(rows)),
        "query": query,
        "status": scanner.get_status(),
        "last_updated": scanner.get_last_updated(),
        "trend_filters": TREND_FILTERS,
        "signal_filters": SIGNAL_FILTERS,
        "timeframes": [tf.value for tf in Timeframe],
    }


@router.get("/", response_class=HTMLResponse)
async def dashboard_index(request: Request) -> HTMLResponse:
    """Main dashboard page. Query params seed the initial table state."""
    templates: Jinja2Templates = request.app.state.templates
    query = TableQuery.from_mapping(request.query_params)
    context = table_context(request.app.state.scanner, query)
    return templates.TemplateResponse(request, "index.html", context)
