"""Tests for the FastAPI application."""

from collections.abc import Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from whale_watch.apps.watcher.server import create_app
from whale_watch.core.timestamps import now_ms

_MINUTE = 60_000


@pytest.fixture
def app() -> FastAPI:
    """Build an app that serves queries without starting the feed."""
    return create_app(start_feed=False)


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    """Run the app lifespan around a test client."""
    with TestClient(app) as test_client:
        yield test_client


def _feed(app: FastAPI, *trades: tuple[str, str, int]) -> None:
    """Push (price, quantity, timestamp) trades straight into the detector."""
    for price, quantity, ts in trades:
        app.state.watcher.detector.process_trade({"p": price, "q": quantity, "T": ts})


class TestHealth:
    """Tests for GET /health."""

    def test_health(self, client: TestClient) -> None:
        """Report status, counters, and metrics."""
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["connected_clients"] == 0
        assert body["trades_processed"] == 0
        assert body["metrics"]["whale_count"] == 0


class TestMetrics:
    """Tests for GET /api/metrics."""

    def test_metrics_after_whale(self, app: FastAPI, client: TestClient) -> None:
        """Reflect trades recorded by the detector."""
        now = now_ms()
        _feed(app, ("100", "1", now), ("600000", "1", now))

        body = client.get("/api/metrics").json()

        assert body["whale_count"] == 1
        assert body["max_whale_amount"] == "600000.00"
        assert body["average_whale_size"] == "600000.00"
        assert body["current_price"] == "600000.00"
        assert body["history_size"] == 2


class TestChartData:
    """Tests for GET /api/chart-data."""

    def test_empty(self, client: TestClient) -> None:
        """Return empty lists before any trade."""
        body = client.get("/api/chart-data").json()
        assert body == {"labels": [], "prices": [], "volumes": [], "timestamps": []}

    def test_window_minutes(self, app: FastAPI, client: TestClient) -> None:
        """Limit the series to the requested lookback."""
        now = now_ms()
        _feed(app, ("100", "1", now - 30 * _MINUTE), ("105", "2", now))

        full = client.get("/api/chart-data").json()
        recent = client.get("/api/chart-data", params={"window_minutes": 5}).json()

        assert len(full["prices"]) == 2
        assert recent["prices"] == ["105.00"]
        assert recent["volumes"] == ["2.0000"]

    def test_invalid_window(self, client: TestClient) -> None:
        """Reject a non-positive window."""
        assert client.get("/api/chart-data", params={"window_minutes": 0}).status_code == 422


class TestCandles:
    """Tests for GET /api/candles."""

    def test_candles(self, app: FastAPI, client: TestClient) -> None:
        """Return OHLCV candles over the history."""
        now = now_ms()
        _feed(app, ("100", "1", now), ("110", "1", now))

        body = client.get("/api/candles", params={"interval": 60}).json()

        assert len(body) == 1
        assert body[0]["open"] == "100.00"
        assert body[0]["close"] == "110.00"
        assert body[0]["trade_count"] == 2

    def test_unsupported_interval(self, client: TestClient) -> None:
        """Reject an unsupported candle width."""
        response = client.get("/api/candles", params={"interval": 7})

        assert response.status_code == 422
        assert "Unsupported candle interval" in response.json()["detail"]


class TestIndicators:
    """Tests for GET /api/indicators."""

    def test_indicators_warm_up(self, client: TestClient) -> None:
        """Report sentinel values before enough buckets exist."""
        body = client.get("/api/indicators").json()

        assert body["sma"] is None
        assert body["ema"] is None
        assert body["momentum"] == "50.00"
        assert body["sma_period"] == 20


class TestViewerSocket:
    """Tests for the /ws viewer endpoint."""

    def test_greeting_and_chart_request(self, app: FastAPI, client: TestClient) -> None:
        """Greet a viewer, then answer a chart update request."""
        with client.websocket_connect("/ws") as ws:
            greeting = [ws.receive_json()["event"] for _ in range(3)]
            assert greeting == ["connection_status", "metrics_update", "chart_data"]
            assert app.state.hub.client_count == 1

            ws.send_text("request_chart_update")
            reply = ws.receive_json()
            assert reply["event"] == "chart_data"
            assert reply["data"]["prices"] == []
