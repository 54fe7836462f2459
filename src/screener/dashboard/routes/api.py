"""JSON API endpoints: filtered/sorted signal rows, summary counts and scanner status."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from screener.dashboard.views import TableQuery, summarize

log = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/signals")
async def get_signals(request: Request) -> JSONResponse:
    """Signal rows after search, filter chips, favorites and sorting.

    Query params: search, trend_filter, signal_filter, sort, order (asc|desc),
    favorites (comma-separated symbols), only_favorites.
    """
    scanner = request.app.state.scanner
    query = TableQuery.from_mapping(request.query_params)
    last_updated = scanner.get_last_updated()

    result = []
    for row in query.apply(scanner.get_results()):
        item = row.to_dict()
        item["last_updated"] = last_updated.get(row.symbol)
        result.append(item)
    return JSONResponse(content=result)


@router.get("/summary")
async def get_summary(request: Request) -> JSONResponse:
    """Filter-chip and summary-panel counts over the searched rows."""
    scanner = request.app.state.scanner
    query = TableQuery.from_mapping(request.query_params)
    return JSONResponse(content=summarize(query.summary_rows(scanner.get_results())))


@router.get("/status")
async def get_status(request: Request) -> JSONResponse:
    """Scanner status: running flag, timeframe, counts and last poll times."""
    return JSONResponse(content=request.app.state.scanner.get_status())
