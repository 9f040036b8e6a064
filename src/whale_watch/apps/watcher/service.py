"""Main orchestrator for the whale watcher service.

Wire together the Binance trade feed, the whale detector, the chart
aggregator, and the viewer fan-out hub. Relay every trade and whale alert as
it arrives, push chart and metrics snapshots on a trade-count and a timer
cadence, log periodic status lines, and optionally reset the detector on a
schedule.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from whale_watch.apps.detector.aggregator import ChartAggregator
from whale_watch.apps.detector.config import DetectorConfig
from whale_watch.apps.detector.detector import WhaleDetector
from whale_watch.apps.detector.records import (
    chart_record,
    metrics_record,
    trade_update_record,
    whale_alert_record,
)
from whale_watch.apps.watcher.broadcaster import (
    CHART_DATA,
    CONNECTION_STATUS,
    METRICS_UPDATE,
    TRADE_UPDATE,
    WHALE_ALERT,
    ConnectionHub,
)
from whale_watch.apps.watcher.config import WatcherConfig
from whale_watch.apps.watcher.ws_client import TradeFeed
from whale_watch.core.exceptions import MalformedInputError
from whale_watch.core.timestamps import now_ms, to_iso

if TYPE_CHECKING:
    from fastapi import WebSocket

    from whale_watch.core.models import Trade
    from whale_watch.core.protocols import Broadcaster, TradeSource

logger = logging.getLogger(__name__)

REQUEST_CHART_UPDATE = "request_chart_update"


class WhaleWatcher:
    """Orchestrate trade ingestion, whale detection, and viewer broadcasts.

    Own one detector instance and hand it explicitly to every collaborator
    that needs it; there is no process-wide detector.

    Args:
        config: Service configuration.
        detector_config: Detector thresholds and capacities.
        feed: Trade source; defaults to a ``TradeFeed`` built from ``config``.
        hub: Fan-out transport; defaults to a fresh ``ConnectionHub``.

    """

    def __init__(
        self,
        config: WatcherConfig | None = None,
        detector_config: DetectorConfig | None = None,
        *,
        feed: TradeSource | None = None,
        hub: Broadcaster | None = None,
    ) -> None:
        """Initialize the watcher and its collaborators."""
        self._config = config or WatcherConfig()
        self.detector = WhaleDetector(detector_config)
        self.aggregator = ChartAggregator(self.detector)
        self.hub: Broadcaster = hub or ConnectionHub()
        self._feed: TradeSource = feed or TradeFeed(
            self._config.feed_url,
            max_reconnect_attempts=self._config.max_reconnect_attempts,
            reconnect_delay=self._config.reconnect_delay,
        )
        self._shutdown = False
        self._processed = 0
        self._skipped = 0
        self._started_at = now_ms()

    @property
    def config(self) -> WatcherConfig:
        """Return the service configuration."""
        return self._config

    @property
    def processed_count(self) -> int:
        """Return the number of trades processed since start-up."""
        return self._processed

    @property
    def skipped_count(self) -> int:
        """Return the number of malformed records skipped since start-up."""
        return self._skipped

    @property
    def uptime_seconds(self) -> float:
        """Return seconds elapsed since the watcher was created."""
        return (now_ms() - self._started_at) / 1000

    async def run(self) -> None:
        """Consume the trade feed until it ends or ``stop()`` is called.

        Steps:
            1. Start the snapshot, status, and (optional) reset timers.
            2. For each raw trade: classify it, broadcast the trade update,
               and broadcast a whale alert when it is a whale.
            3. Every ``broadcast_every`` trades, broadcast chart and metrics.
            4. On exit, cancel the timers and close the feed.

        """
        logger.info("Starting whale watcher on %s", self._config.feed_url)
        tasks = [
            asyncio.create_task(self._periodic_snapshot()),
            asyncio.create_task(self._periodic_status()),
        ]
        if self._config.reset_interval_seconds > 0:
            tasks.append(asyncio.create_task(self._periodic_reset()))

        try:
            async for raw in self._feed.stream():
                if self._shutdown:
                    break
                await self.handle_raw_trade(raw)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            await self._feed.close()
            logger.info(
                "Whale watcher stopped: %d trades processed, %d skipped",
                self._processed,
                self._skipped,
            )

    async def stop(self) -> None:
        """Request shutdown and close the feed so ``run()`` returns."""
        self._shutdown = True
        await self._feed.close()

    async def handle_raw_trade(self, raw: dict[str, Any]) -> Trade | None:
        """Process one raw record and broadcast the results.

        Args:
            raw: Raw trade record from the feed.

        Returns:
            The classified trade, or ``None`` if the record was malformed
            and skipped.

        """
        try:
            trade = self.detector.process_trade(raw)
        except MalformedInputError as exc:
            self._skipped += 1
            logger.warning("Skipping malformed trade: %s", exc)
            return None

        self._processed += 1
        await self.hub.broadcast(TRADE_UPDATE, trade_update_record(trade))

        if trade.is_whale:
            alert = whale_alert_record(
                trade,
                base_asset=self._config.base_asset,
                critical_threshold=self.detector.config.critical_threshold,
            )
            logger.info(
                "%s [%s] at %s",
                alert["message"],
                alert["severity"],
                alert["timestamp"],
            )
            await self.hub.broadcast(WHALE_ALERT, alert)

        if self._processed % self._config.broadcast_every == 0:
            await self.broadcast_snapshots()
        return trade

    async def broadcast_snapshots(self) -> None:
        """Broadcast the current chart series and metrics to all viewers."""
        await self.hub.broadcast(CHART_DATA, self.chart_snapshot())
        await self.hub.broadcast(METRICS_UPDATE, self.metrics_snapshot())

    def metrics_snapshot(self) -> dict[str, Any]:
        """Return the current metrics record."""
        return metrics_record(self.detector.get_metrics())

    def chart_snapshot(self, window_ms: int | None = None) -> dict[str, Any]:
        """Return the current chart record."""
        return chart_record(self.aggregator.get_chart_data(window_ms))

    async def greet(self, ws: WebSocket, hub: ConnectionHub) -> None:
        """Send the connection status and initial snapshots to a new viewer."""
        await hub.send(
            ws,
            CONNECTION_STATUS,
            {
                "status": "connected",
                "timestamp": to_iso(now_ms()),
                "message": "Connected to whale watch server",
            },
        )
        await hub.send(ws, METRICS_UPDATE, self.metrics_snapshot())
        await hub.send(ws, CHART_DATA, self.chart_snapshot())

    async def handle_client_message(self, ws: WebSocket, hub: ConnectionHub, message: str) -> None:
        """Answer a viewer request; only ``request_chart_update`` is understood."""
        if message.strip() == REQUEST_CHART_UPDATE:
            await hub.send(ws, CHART_DATA, self.chart_snapshot())
        else:
            logger.debug("Ignoring client message: %s", message[:100])

    async def _periodic_snapshot(self) -> None:
        """Broadcast snapshots on a timer so charts move during quiet periods."""
        while not self._shutdown:
            await asyncio.sleep(self._config.snapshot_interval_seconds)
            try:
                await self.broadcast_snapshots()
            except Exception:
                logger.exception("Periodic snapshot broadcast failed")

    async def _periodic_status(self) -> None:
        """Log a status line for monitoring at regular intervals."""
        while not self._shutdown:
            await asyncio.sleep(self._config.status_interval_seconds)
            try:
                metrics = self.detector.get_metrics()
                logger.info(
                    "[WHALE-WATCH] clients=%d whales=%d price=%.2f trades=%d skipped=%d",
                    self.hub.client_count,
                    metrics.whale_count,
                    metrics.current_price,
                    metrics.history_size,
                    self._skipped,
                )
            except Exception:
                logger.exception("Status report failed")

    async def _periodic_reset(self) -> None:
        """Reset the detector on the configured schedule."""
        while not self._shutdown:
            await asyncio.sleep(self._config.reset_interval_seconds)
            try:
                self.detector.reset()
                await self.broadcast_snapshots()
            except Exception:
                logger.exception("Scheduled reset failed")
