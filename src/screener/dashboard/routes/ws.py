"""WebSocket hub pushing each client its own rendering of the signals table.

Clients send their table state (search, filter chips, sort, favorites) as a
JSON message whenever it changes; the hub keeps it per connection so periodic
pushes respect it.
"""

from __future__ import annotations

import json
from collections.abc import Callable

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from screener.dashboard.views import TableQuery

log = structlog.get_logger(__name__)

router = APIRouter()


class DashboardHub:
    """Tracks WebSocket clients and the table query each one is viewing."""

    def __init__(self) -> None:
        self.connections: dict[WebSocket, TableQuery] = {}

    async def connect(self, ws: WebSocket) -> None:
        """Accept a WebSocket connection with the default table query."""
        await ws.accept()
        self.connections[ws] = TableQuery()
        log.info("dashboard_ws_connected", total=len(self.connections))

    def disconnect(self, ws: WebSocket) -> None:
        self.connections.pop(ws, None)
        log.info("dashboard_ws_disconnected", total=len(self.connections))

    def set_query(self, ws: WebSocket, query: TableQuery) -> None:
        if ws in self.connections:
            self.connections[ws] = query

    async def broadcast(self, render: Callable[[TableQuery], str]) -> None:
        """Render once per distinct query and send to every client, dropping broken connections."""
        rendered: dict[TableQuery, str] = {}
        for ws, query in list(self.connections.items()):
            if query not in rendered:
                rendered[query] = render(query)
            try:
                await ws.send_text(rendered[query])
            except Exception:
                self.connections.pop(ws, None)
                log.warning("dashboard_ws_broadcast_error", remaining=len(self.connections))


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """WebSocket endpoint; incoming messages update the client's table query."""
    ws_hub: DashboardHub = websocket.app.state.hub
    await ws_hub.connect(websocket)
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError:
                log.debug("dashboard_ws_invalid_json", size=len(raw))
                continue
            if isinstance(message, dict):
                ws_hub.set_query(websocket, TableQuery.from_mapping(message))
            else:
                log.debug("dashboard_ws_ignored_message", kind=type(message).__name__)
    except WebSocketDisconnect:
        pass
    finally:
        ws_hub.disconnect(websocket)
