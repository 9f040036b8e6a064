"""Fan-out hub delivering named records to connected viewer WebSockets.

Every message is a JSON envelope ``{"event": <name>, "data": <payload>}``.
A viewer whose socket fails during a send is dropped from the hub; the
remaining viewers still receive the message.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from fastapi import WebSocket

logger = logging.getLogger(__name__)

CONNECTION_STATUS = "connection_status"
TRADE_UPDATE = "trade_update"
WHALE_ALERT = "whale_alert"
METRICS_UPDATE = "metrics_update"
CHART_DATA = "chart_data"


class ConnectionHub:
    """Track connected viewers and broadcast records to all of them."""

    def __init__(self) -> None:
        """Initialize an empty hub."""
        self._clients: set[WebSocket] = set()

    @property
    def client_count(self) -> int:
        """Return the number of connected viewers."""
        return len(self._clients)

    async def connect(self, ws: WebSocket) -> None:
        """Accept a viewer's WebSocket and register it for broadcasts."""
        await ws.accept()
        self._clients.add(ws)
        logger.info("Client connected (active: %d)", len(self._clients))

    def disconnect(self, ws: WebSocket) -> None:
        """Forget a viewer. Unknown sockets are ignored."""
        if ws in self._clients:
            self._clients.discard(ws)
            logger.info("Client disconnected (active: %d)", len(self._clients))

    async def send(self, ws: WebSocket, event: str, data: Any) -> bool:
        """Send one record to one viewer.

        Returns:
            True if the send succeeded. On failure the viewer is dropped.

        """
        try:
            await ws.send_json({"event": event, "data": data})
        except Exception as exc:  # noqa: BLE001
            logger.debug("Dropping client after failed send of %s: %s", event, exc)
            self.disconnect(ws)
            return False
        return True

    async def broadcast(self, event: str, data: Any) -> None:
        """Send one record to every connected viewer concurrently."""
        if not self._clients:
            return
        clients = list(self._clients)
        await asyncio.gather(*(self.send(ws, event, data) for ws in clients))
