"""Tests for the whale watcher orchestrator."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any
from unittest.mock import AsyncMock, patch

import pytest

from whale_watch.apps.watcher.broadcaster import ConnectionHub
from whale_watch.apps.watcher.config import WatcherConfig
from whale_watch.apps.watcher.service import REQUEST_CHART_UPDATE, WhaleWatcher
from whale_watch.apps.watcher.ws_client import _parse_message

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

_TS = 1_700_000_000_000
_SMALL = {"e": "trade", "p": "100", "q": "1", "T": _TS}
_WHALE = {"e": "trade", "p": "60000", "q": "20", "T": _TS + 1}
_INFINITE_TIME = json.dumps({"e": "trade", "p": "100", "q": "1", "T": float("inf")})
_FAR_FUTURE_WHALE = {"e": "trade", "p": "60000", "q": "20", "T": 99999999999999999}
_HUGE = {"e": "trade", "p": "1e500000", "q": "1e500000", "T": _TS}
_ALL_TIME_MS = 10**14


@dataclass
class FakeFeed:
    """In-memory trade source yielding a fixed list of records."""

    records: list[dict[str, Any]] = field(default_factory=list)
    closed: bool = False

    async def stream(self) -> AsyncIterator[dict[str, Any]]:
        """Yield the configured records."""
        for record in self.records:
            yield record

    async def close(self) -> None:
        """Mark the feed closed."""
        self.closed = True


@dataclass
class FakeHub:
    """Broadcaster that records every event."""

    events: list[tuple[str, Any]] = field(default_factory=list)

    @property
    def client_count(self) -> int:
        """Return zero connected viewers."""
        return 0

    async def broadcast(self, event: str, data: Any) -> None:
        """Record the event."""
        self.events.append((event, data))

    def names(self) -> list[str]:
        """Return the recorded event names in order."""
        return [name for name, _ in self.events]


def _watcher(
    records: list[dict[str, Any]] | None = None,
    config: WatcherConfig | None = None,
) -> tuple[WhaleWatcher, FakeFeed, FakeHub]:
    """Build a watcher wired to a fake feed and hub."""
    feed = FakeFeed(records or [])
    hub = FakeHub()
    watcher = WhaleWatcher(config, feed=feed, hub=hub)
    return watcher, feed, hub


class TestHandleRawTrade:
    """Tests for WhaleWatcher.handle_raw_trade."""

    @pytest.mark.asyncio
    async def test_small_trade_broadcasts_update(self) -> None:
        """Broadcast a trade update for every processed trade."""
        watcher, _, hub = _watcher()

        trade = await watcher.handle_raw_trade(_SMALL)

        assert trade is not None
        assert hub.names() == ["trade_update"]
        assert hub.events[0][1]["price"] == "100.00"
        assert watcher.processed_count == 1

    @pytest.mark.asyncio
    async def test_whale_broadcasts_alert(self) -> None:
        """Broadcast a whale alert after the trade update."""
        watcher, _, hub = _watcher()

        await watcher.handle_raw_trade(_WHALE)

        assert hub.names() == ["trade_update", "whale_alert"]
        alert = hub.events[1][1]
        assert alert["severity"] == "critical"
        assert alert["message"].startswith("WHALE ALERT: 20.0000 BTC")

    @pytest.mark.asyncio
    async def test_malformed_is_skipped(self) -> None:
        """Skip malformed records without broadcasting."""
        watcher, _, hub = _watcher()

        assert await watcher.handle_raw_trade({"p": "abc", "q": "1"}) is None

        assert hub.events == []
        assert watcher.skipped_count == 1
        assert watcher.processed_count == 0

    @pytest.mark.asyncio
    async def test_snapshots_every_n_trades(self) -> None:
        """Broadcast chart data and metrics every broadcast_every trades."""
        watcher, _, hub = _watcher(config=WatcherConfig(broadcast_every=2))

        await watcher.handle_raw_trade(_SMALL)
        await watcher.handle_raw_trade(_SMALL)

        assert hub.names() == ["trade_update", "trade_update", "chart_data", "metrics_update"]
        metrics = hub.events[-1][1]
        assert metrics["history_size"] == 2


class TestRun:
    """Tests for the feed loop."""

    @pytest.mark.asyncio
    async def test_processes_feed_and_closes(self) -> None:
        """Process every record, then close the feed when it ends."""
        watcher, feed, hub = _watcher([_SMALL, {"p": None}, _WHALE])

        await watcher.run()

        assert watcher.processed_count == 2
        assert watcher.skipped_count == 1
        assert feed.closed is True
        assert hub.names().count("whale_alert") == 1
        assert watcher.detector.get_metrics().whale_count == 1

    @pytest.mark.asyncio
    async def test_unusable_records_do_not_stop_the_stream(self) -> None:
        """Skip records that cannot be represented and keep processing."""
        infinite = _parse_message(_INFINITE_TIME)
        assert infinite is not None
        watcher, feed, hub = _watcher([infinite, _FAR_FUTURE_WHALE, _HUGE, _SMALL])

        await watcher.run()

        assert watcher.processed_count == 1
        assert watcher.skipped_count == 3
        assert feed.closed is True
        assert "whale_alert" not in hub.names()
        assert watcher.chart_snapshot(window_ms=_ALL_TIME_MS)["prices"] == ["100.00"]
        assert watcher.metrics_snapshot()["history_size"] == 1

    @pytest.mark.asyncio
    async def test_stop_closes_feed(self) -> None:
        """Stopping closes the feed."""
        watcher, feed, _ = _watcher()
        await watcher.stop()
        assert feed.closed is True


class TestSnapshots:
    """Tests for snapshot records."""

    @pytest.mark.asyncio
    async def test_metrics_snapshot(self) -> None:
        """Report metrics for the processed trades."""
        watcher, _, _ = _watcher()
        await watcher.handle_raw_trade(_SMALL)
        await watcher.handle_raw_trade(_WHALE)

        metrics = watcher.metrics_snapshot()
        assert metrics["whale_count"] == 1
        assert metrics["max_whale_amount"] == "1200000.00"
        assert metrics["history_size"] == 2

    def test_chart_snapshot_empty(self) -> None:
        """Report an empty chart before any trade."""
        watcher, _, _ = _watcher()
        assert watcher.chart_snapshot() == {
            "labels": [],
            "prices": [],
            "volumes": [],
            "timestamps": [],
        }


class TestViewerMessages:
    """Tests for greeting viewers and answering their requests."""

    @pytest.mark.asyncio
    async def test_greet_sends_status_metrics_chart(self) -> None:
        """Send connection status, metrics, and chart data to a new viewer."""
        watcher, _, _ = _watcher()
        hub = ConnectionHub()
        ws = AsyncMock()

        await watcher.greet(ws, hub)

        events = [call.args[0]["event"] for call in ws.send_json.await_args_list]
        assert events == ["connection_status", "metrics_update", "chart_data"]
        status = ws.send_json.await_args_list[0].args[0]["data"]
        assert status["status"] == "connected"

    @pytest.mark.asyncio
    async def test_chart_request(self) -> None:
        """Answer a chart update request with chart data."""
        watcher, _, _ = _watcher()
        hub = ConnectionHub()
        ws = AsyncMock()

        await watcher.handle_client_message(ws, hub, REQUEST_CHART_UPDATE)

        ws.send_json.assert_awaited_once()
        assert ws.send_json.await_args.args[0]["event"] == "chart_data"

    @pytest.mark.asyncio
    async def test_unknown_message_ignored(self) -> None:
        """Ignore messages other than chart requests."""
        watcher, _, _ = _watcher()
        ws = AsyncMock()

        await watcher.handle_client_message(ws, ConnectionHub(), "hello")

        ws.send_json.assert_not_awaited()


class TestPeriodicReset:
    """Tests for the scheduled detector reset."""

    @pytest.mark.asyncio
    async def test_reset_clears_detector(self) -> None:
        """Reset the detector and broadcast fresh snapshots."""
        watcher, _, hub = _watcher(config=WatcherConfig(reset_interval_seconds=60))
        await watcher.handle_raw_trade(_WHALE)

        async def one_shot_sleep(_delay: float) -> None:
            watcher._shutdown = True

        with patch("asyncio.sleep", side_effect=one_shot_sleep):
            await watcher._periodic_reset()

        assert len(watcher.detector) == 0
        assert hub.names()[-2:] == ["chart_data", "metrics_update"]
        assert hub.events[-1][1]["whale_count"] == 0


@dataclass
class FlakyHub(FakeHub):
    """Hub whose first ``failures`` broadcasts raise."""

    failures: int = 1

    async def broadcast(self, event: str, data: Any) -> None:
        """Raise until the failure budget is spent, then record."""
        if self.failures:
            self.failures -= 1
            msg = "viewer send failed"
            raise RuntimeError(msg)
        await super().broadcast(event, data)


class TestPeriodicTasks:
    """Tests that timer loops survive errors in a single iteration."""

    @pytest.mark.asyncio
    async def test_snapshot_failure_is_logged_and_loop_continues(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        """A failing broadcast is logged and the next tick still broadcasts."""
        hub = FlakyHub()
        watcher = WhaleWatcher(feed=FakeFeed(), hub=hub)
        ticks = 0

        async def two_tick_sleep(_delay: float) -> None:
            nonlocal ticks
            ticks += 1
            if ticks == 2:
                watcher._shutdown = True

        with (
            caplog.at_level(logging.ERROR, logger="whale_watch.apps.watcher.service"),
            patch("asyncio.sleep", side_effect=two_tick_sleep),
        ):
            await watcher._periodic_snapshot()

        assert ticks == 2
        assert "Periodic snapshot broadcast failed" in caplog.text
        assert hub.names() == ["chart_data", "metrics_update"]

    @pytest.mark.asyncio
    async def test_status_failure_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        """A failing status report is logged instead of ending the task."""
        watcher, _, _ = _watcher()

        async def one_shot_sleep(_delay: float) -> None:
            watcher._shutdown = True

        with (
            caplog.at_level(logging.ERROR, logger="whale_watch.apps.watcher.service"),
            patch("asyncio.sleep", side_effect=one_shot_sleep),
            patch.object(watcher.detector, "get_metrics", side_effect=RuntimeError("boom")),
        ):
            await watcher._periodic_status()

        assert "Status report failed" in caplog.text

    @pytest.mark.asyncio
    async def test_reset_failure_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        """A failing scheduled reset is logged instead of ending the task."""
        hub = FlakyHub()
        watcher = WhaleWatcher(WatcherConfig(reset_interval_seconds=60), feed=FakeFeed(), hub=hub)

        async def one_shot_sleep(_delay: float) -> None:
            watcher._shutdown = True

        with (
            caplog.at_level(logging.ERROR, logger="whale_watch.apps.watcher.service"),
            patch("asyncio.sleep", side_effect=one_shot_sleep),
        ):
            await watcher._periodic_reset()

        assert "Scheduled reset failed" in caplog.text
