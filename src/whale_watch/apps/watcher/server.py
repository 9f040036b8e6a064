"""FastAPI application exposing the watcher to viewers and health checks.

Serve the viewer WebSocket that receives trade updates, whale alerts,
metrics, and chart snapshots, plus read-only HTTP endpoints for the current
metrics, chart series, candles, and indicators. The application lifespan
starts the watcher's feed loop in the background and stops it on shutdown.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Annotated, Any

from fastapi import FastAPI, HTTPException, Query, WebSocket, WebSocketDisconnect

from whale_watch.apps.detector.records import candles_record, indicators_record
from whale_watch.apps.watcher.broadcaster import ConnectionHub
from whale_watch.apps.watcher.service import WhaleWatcher
from whale_watch.core.models import MS_PER_MINUTE, CandleInterval

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from whale_watch.apps.detector.config import DetectorConfig
    from whale_watch.apps.watcher.config import WatcherConfig
    from whale_watch.core.protocols import TradeSource

logger = logging.getLogger(__name__)

_MAX_WINDOW_MINUTES = 24 * 60


def create_app(
    config: WatcherConfig | None = None,
    detector_config: DetectorConfig | None = None,
    *,
    feed: TradeSource | None = None,
    start_feed: bool = True,
) -> FastAPI:
    """Build the FastAPI application around a new ``WhaleWatcher``.

    Args:
        config: Service configuration.
        detector_config: Detector thresholds and capacities.
        feed: Trade source override, mainly for tests.
        start_feed: Start the feed loop in the lifespan. Disable to serve
            only the query surface (tests, offline inspection).

    Returns:
        The configured application; the watcher is on ``app.state.watcher``
        and the hub on ``app.state.hub``.

    """
    hub = ConnectionHub()
    watcher = WhaleWatcher(config, detector_config, feed=feed, hub=hub)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        task: asyncio.Task[None] | None = None
        if start_feed:
            task = asyncio.create_task(watcher.run())
        try:
            yield
        finally:
            if task is not None:
                await watcher.stop()
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
            logger.info("Server closed")

    app = FastAPI(title="Whale Watch", lifespan=lifespan)
    app.state.watcher = watcher
    app.state.hub = hub

    @app.get("/health")
    def health() -> dict[str, Any]:
        """Report liveness, uptime, connected viewers, and current metrics."""
        return {
            "status": "ok",
            "uptime": round(watcher.uptime_seconds, 3),
            "connected_clients": hub.client_count,
            "trades_processed": watcher.processed_count,
            "trades_skipped": watcher.skipped_count,
            "metrics": watcher.metrics_snapshot(),
        }

    @app.get("/api/metrics")
    def metrics() -> dict[str, Any]:
        """Return the current metrics snapshot."""
        return watcher.metrics_snapshot()

    @app.get("/api/chart-data")
    def chart_data(
        window_minutes: Annotated[int | None, Query(ge=1, le=_MAX_WINDOW_MINUTES)] = None,
    ) -> dict[str, Any]:
        """Return the bucketed price/volume series over the lookback window."""
        window_ms = window_minutes * MS_PER_MINUTE if window_minutes is not None else None
        return watcher.chart_snapshot(window_ms)

    @app.get("/api/candles")
    def candles(interval: int = 1) -> list[dict[str, Any]]:
        """Return OHLCV candles over the whole rolling history."""
        try:
            width = CandleInterval.from_minutes(interval)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return candles_record(watcher.aggregator.get_candles(width.minutes))

    @app.get("/api/indicators")
    def indicators() -> dict[str, Any]:
        """Return SMA, EMA, and momentum over the chart series closes."""
        return indicators_record(watcher.aggregator.get_indicators())

    @app.websocket("/ws")
    async def viewer(ws: WebSocket) -> None:
        """Register a viewer, send the initial snapshots, and answer its requests."""
        await hub.connect(ws)
        try:
            await watcher.greet(ws, hub)
            while True:
                message = await ws.receive_text()
                await watcher.handle_client_message(ws, hub, message)
        except WebSocketDisconnect:
            pass
        finally:
            hub.disconnect(ws)

    return app
