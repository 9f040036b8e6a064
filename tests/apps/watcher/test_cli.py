"""Tests for the whale watch CLI commands."""

from decimal import Decimal
from pathlib import Path
from unittest.mock import AsyncMock, patch

import httpx
from typer.testing import CliRunner

from whale_watch.apps.watcher.cli import app
from whale_watch.core.exceptions import WatcherAPIError
from whale_watch.core.models import Candle

_SERVE = "whale_watch.apps.watcher.cli.serve_cmd"
_STATUS = "whale_watch.apps.watcher.cli.status_cmd"
_CHART = "whale_watch.apps.watcher.cli.chart_cmd"

_HEALTH = {
    "status": "ok",
    "uptime": 12.5,
    "connected_clients": 2,
    "trades_processed": 40,
    "metrics": {
        "current_price": "65000.00",
        "whale_count": 1,
        "max_whale_amount": "650000.00",
        "average_whale_size": "650000.00",
        "last_whale_time": None,
        "hourly_volume": "12.5000",
    },
}


def _candles() -> list[Candle]:
    """Build a short candle list."""
    return [
        Candle(
            timestamp=1_700_000_040_000 + i * 60_000,
            open=Decimal(100),
            high=Decimal(110),
            low=Decimal(90),
            close=Decimal(105),
            volume=Decimal(1),
            trade_count=1,
        )
        for i in range(3)
    ]


class TestServeCommand:
    """Tests for the serve command."""

    def test_starts_uvicorn_with_overrides(self) -> None:
        """Apply CLI overrides and hand the app to uvicorn."""
        runner = CliRunner()
        with (
            patch(f"{_SERVE}.create_app") as mock_create,
            patch(f"{_SERVE}.uvicorn") as mock_uvicorn,
        ):
            result = runner.invoke(app, ["serve", "--port", "8081", "--threshold", "250000"])

        assert result.exit_code == 0, result.output
        assert "Starting whale watch on http://0.0.0.0:8081" in result.output
        watcher_config, detector_config = mock_create.call_args.args
        assert watcher_config.port == 8081
        assert detector_config.whale_threshold == Decimal(250000)
        mock_uvicorn.run.assert_called_once()
        assert mock_uvicorn.run.call_args.kwargs["port"] == 8081

    def test_rejects_non_positive_threshold(self) -> None:
        """Exit with an error for a zero threshold."""
        runner = CliRunner()
        with patch(f"{_SERVE}.uvicorn") as mock_uvicorn:
            result = runner.invoke(app, ["serve", "--threshold=0"])

        assert result.exit_code == 1
        assert "--threshold must be positive" in result.output
        mock_uvicorn.run.assert_not_called()


class TestStatusCommand:
    """Tests for the status command."""

    def test_prints_metrics(self) -> None:
        """Print the server's health and metrics."""
        runner = CliRunner()
        with patch(f"{_STATUS}._fetch_health", AsyncMock(return_value=_HEALTH)):
            result = runner.invoke(app, ["status"])

        assert result.exit_code == 0, result.output
        assert "Clients:         2" in result.output
        assert "Whales:          1" in result.output
        assert "Last whale:      -" in result.output

    def test_unreachable_server(self) -> None:
        """Exit with an error when the server cannot be reached."""
        runner = CliRunner()
        error = httpx.ConnectError("connection refused")
        with patch(f"{_STATUS}._fetch_health", AsyncMock(side_effect=error)):
            result = runner.invoke(app, ["status", "--url", "http://nowhere.test"])

        assert result.exit_code == 1
        assert "could not reach server" in result.output


class TestChartCommand:
    """Tests for the chart command."""

    def test_saves_chart(self, tmp_path: Path) -> None:
        """Save the chart to the requested file."""
        output = tmp_path / "chart.html"
        runner = CliRunner()
        with patch(f"{_CHART}._fetch_candles", AsyncMock(return_value=_candles())):
            result = runner.invoke(app, ["chart", "--interval", "5", "--output", str(output)])

        assert result.exit_code == 0, result.output
        assert "Chart saved to" in result.output
        assert output.exists()

    def test_opens_browser_without_output(self) -> None:
        """Open the chart when no output path is given."""
        runner = CliRunner()
        with (
            patch(f"{_CHART}._fetch_candles", AsyncMock(return_value=_candles())),
            patch(f"{_CHART}.show_chart") as mock_show,
        ):
            result = runner.invoke(app, ["chart"])

        assert result.exit_code == 0, result.output
        mock_show.assert_called_once()

    def test_no_candles(self) -> None:
        """Report an empty history without drawing."""
        runner = CliRunner()
        with patch(f"{_CHART}._fetch_candles", AsyncMock(return_value=[])):
            result = runner.invoke(app, ["chart"])

        assert result.exit_code == 0
        assert "No trades in the rolling history yet." in result.output

    def test_unsupported_interval(self) -> None:
        """Exit with an error for an unsupported interval."""
        runner = CliRunner()
        result = runner.invoke(app, ["chart", "--interval", "7"])

        assert result.exit_code == 1
        assert "Unsupported candle interval" in result.output

    def test_server_error(self) -> None:
        """Exit with the server's error detail."""
        runner = CliRunner()
        error = WatcherAPIError(503, "starting up")
        with patch(f"{_CHART}._fetch_candles", AsyncMock(side_effect=error)):
            result = runner.invoke(app, ["chart"])

        assert result.exit_code == 1
        assert "server returned 503: starting up" in result.output
