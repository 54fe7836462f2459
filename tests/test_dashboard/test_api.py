"""Tests for dashboard HTTP routes, the WebSocket hub and OOB fragment rendering."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from screener.dashboard.app import _age, _format_percent, _format_price, create_dashboard_app
from screener.dashboard.routes.ws import DashboardHub
from screener.dashboard.update_loop import render_fragments
from screener.dashboard.views import TableQuery
from screener.exceptions import UnsupportedTimeframeError


@pytest.fixture
def app(mock_scanner):
    return create_dashboard_app(scanner=mock_scanner)


@pytest.fixture
def client(app) -> TestClient:
    """Create FastAPI TestClient instance."""
    return TestClient(app)


class TestApiRoutes:
    """Tests for the JSON API."""

    def test_signals_returns_all_rows(self, client: TestClient) -> None:
        response = client.get("/api/signals")

        assert response.status_code == 200
        payload = response.json()
        assert [row["symbol"] for row in payload] == [
            "BTC/USDT:USDT",
            "ETH/USDT:USDT",
            "SOL/USDT:USDT",
        ]
        assert payload[0]["last_updated"] == 1_000
        assert payload[1]["last_updated"] is None

    def test_signals_filter_and_sort(self, client: TestClient) -> None:
        response = client.get(
            "/api/signals",
            params={"trend_filter": "bearish_trend", "sort": "price_change_percent", "order": "asc"},
        )
        assert [row["symbol"] for row in response.json()] == ["SOL/USDT:USDT", "ETH/USDT:USDT"]

    def test_signals_only_favorites(self, client: TestClient) -> None:
        response = client.get(
            "/api/signals",
            params={"favorites": "ETH/USDT:USDT", "only_favorites": "true"},
        )
        assert [row["symbol"] for row in response.json()] == ["ETH/USDT:USDT"]

    def test_summary(self, client: TestClient) -> None:
        response = client.get("/api/summary")

        assert response.status_code == 200
        assert response.json()["total"] == 3
        assert response.json()["bearish_trend"] == 2

    def test_status(self, client: TestClient) -> None:
        response = client.get("/api/status")
        assert response.json()["timeframe"] == "1d"


class TestPages:
    """Tests for HTML pages and partials."""

    def test_index_renders_rows(self, client: TestClient) -> None:
        response = client.get("/")

        assert response.status_code == 200
        assert "BTC/USDT:USDT" in response.text
        assert 'id="signals-table-panel"' in response.text

    def test_timeframe_switch(self, client: TestClient, mock_scanner: MagicMock) -> None:
        response = client.post("/actions/timeframe", data={"timeframe": "4h"})

        assert response.status_code == 200
        mock_scanner.set_timeframe.assert_awaited_once_with("4h")
        assert "<table" in response.text

    def test_unsupported_timeframe_reports_error(
        self, client: TestClient, mock_scanner: MagicMock
    ) -> None:
        mock_scanner.set_timeframe = AsyncMock(
            side_effect=UnsupportedTimeframeError("Unsupported timeframe: '1h'")
        )

        response = client.post("/actions/timeframe", data={"timeframe": "1h"})

        assert response.status_code == 200
        assert "Unsupported timeframe" in response.text


class TestDashboardHub:
    """Tests for per-client query tracking and broadcast."""

    @pytest.mark.asyncio
    async def test_connect_assigns_default_query(self) -> None:
        hub = DashboardHub()
        ws = AsyncMock()

        await hub.connect(ws)

        ws.accept.assert_awaited_once()
        assert hub.connections[ws] == TableQuery()

    @pytest.mark.asyncio
    async def test_broadcast_renders_once_per_query(self) -> None:
        hub = DashboardHub()
        a, b, c = AsyncMock(), AsyncMock(), AsyncMock()
        for ws in (a, b, c):
            await hub.connect(ws)
        hub.set_query(c, TableQuery(search="btc"))
        render = MagicMock(side_effect=lambda q: f"rows:{q.search}")

        await hub.broadcast(render)

        assert render.call_count == 2
        a.send_text.assert_awaited_once_with("rows:")
        c.send_text.assert_awaited_once_with("rows:btc")

    @pytest.mark.asyncio
    async def test_broken_connection_is_dropped(self) -> None:
        hub = DashboardHub()
        ok, broken = AsyncMock(), AsyncMock()
        broken.send_text = AsyncMock(side_effect=RuntimeError("closed"))
        await hub.connect(ok)
        await hub.connect(broken)

        await hub.broadcast(lambda q: "payload")

        assert list(hub.connections) == [ok]

    def test_set_query_ignores_unknown_socket(self) -> None:
        hub = DashboardHub()
        hub.set_query(MagicMock(), TableQuery(search="x"))
        assert hub.connections == {}


class TestWebSocketEndpoint:
    """Tests for the /ws endpoint."""

    def test_bad_messages_keep_connection_and_close_cleans_up(self, app, client) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.send_text("not json")
            ws.send_json(["not", "a", "query"])
            ws.send_json({"search": "btc"})

        assert app.state.hub.connections == {}


class TestRenderFragments:
    """Tests for the OOB fragments pushed by the update loop."""

    def test_fragments_respect_query(self, app) -> None:
        html = render_fragments(app, TableQuery(trend_filter="bullish_trend"))

        assert 'id="signals-table-panel" hx-swap-oob="true"' in html
        assert 'id="summary-panel" hx-swap-oob="true"' in html
        assert "BTC/USDT:USDT" in html
        assert "SOL/USDT:USDT" not in html


class TestTemplateFilters:
    """Tests for the Jinja2 formatting filters."""

    def test_format_price_scales_precision(self) -> None:
        assert _format_price(43210.5) == "43,210.50"
        assert _format_price(2.5) == "2.5000"
        assert _format_price(0.00012345) == "0.00012345"
        assert _format_price(None) == "–"

    def test_format_percent_is_signed(self) -> None:
        assert _format_percent(4.08) == "+4.08%"
        assert _format_percent(-2.5) == "-2.50%"

    def test_age(self) -> None:
        assert _age(None) == "–"
        assert _age(0, now_ms=12_000) == "12s"
        assert _age(0, now_ms=3 * 3_600_000) == "3h"
        assert _age(0, now_ms=2 * 86_400_000 + 5_000) == "2d"
