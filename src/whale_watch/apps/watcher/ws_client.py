"""Async WebSocket client for the Binance trade stream.

Connect to a Binance ``<symbol>@trade`` stream and yield parsed trade
events as they arrive. Reconnect after a fixed delay on connection failures,
giving up after a bounded number of consecutive failed attempts, and support
graceful shutdown.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any, cast

from websockets import ConnectionClosed
from websockets.asyncio.client import ClientConnection, connect

from whale_watch.apps.watcher.config import DEFAULT_FEED_URL

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)

_PING_INTERVAL = 20
_PING_TIMEOUT = 10
_USER_AGENT = "whale-watch/0.1"


class TradeFeed:
    """Async WebSocket client for streaming Binance trade events.

    Yield every ``trade`` event payload from the stream. On a dropped or
    refused connection wait ``reconnect_delay`` seconds and try again; a
    successful connection resets the failure count. After
    ``max_reconnect_attempts`` consecutive failures the stream ends.

    Args:
        url: Binance stream URL (raw or combined stream).
        max_reconnect_attempts: Consecutive failures tolerated before giving up.
        reconnect_delay: Seconds to wait between attempts.

    """

    def __init__(
        self,
        url: str = DEFAULT_FEED_URL,
        *,
        max_reconnect_attempts: int = 5,
        reconnect_delay: float = 5.0,
    ) -> None:
        """Initialize the trade feed."""
        self._url = url
        self._max_reconnect_attempts = max_reconnect_attempts
        self._reconnect_delay = reconnect_delay
        self._ws: ClientConnection | None = None
        self._closed = False
        self._connected = False

    @property
    def url(self) -> str:
        """Return the stream URL."""
        return self._url

    async def stream(self) -> AsyncIterator[dict[str, Any]]:
        """Connect and yield trade events until closed or retries are exhausted.

        Yields:
            Parsed trade event dictionaries (Binance ``p``/``q``/``T`` keys).

        """
        failures = 0
        while not self._closed:
            self._connected = False
            try:
                async for event in self._connect_and_listen():
                    yield event
            except ConnectionClosed as exc:
                if self._closed:
                    return
                logger.warning("Binance WebSocket disconnected: %s", exc)
            except OSError as exc:
                if self._closed:
                    return
                logger.warning("Binance WebSocket error: %s", exc)
            else:
                if self._closed:
                    return
                logger.warning("Binance WebSocket stream ended")

            if self._connected:
                failures = 0
            failures += 1
            if failures > self._max_reconnect_attempts:
                logger.error(
                    "Max reconnection attempts (%d) reached, giving up on %s",
                    self._max_reconnect_attempts,
                    self._url,
                )
                return

            logger.info(
                "Reconnecting in %.1fs (attempt %d/%d)...",
                self._reconnect_delay,
                failures,
                self._max_reconnect_attempts,
            )
            await asyncio.sleep(self._reconnect_delay)

    async def close(self) -> None:
        """Gracefully close the WebSocket connection."""
        self._closed = True
        if self._ws is not None:
            await self._ws.close()
            self._ws = None
        logger.info("TradeFeed closed")

    async def _connect_and_listen(self) -> AsyncIterator[dict[str, Any]]:
        """Open a connection and yield trade events.

        Yields:
            Parsed trade event dictionaries.

        """
        async with connect(
            self._url,
            ping_interval=_PING_INTERVAL,
            ping_timeout=_PING_TIMEOUT,
            user_agent_header=_USER_AGENT,
        ) as ws:
            self._ws = ws
            self._connected = True
            logger.info("Binance WebSocket connected: %s", self._url)

            async for raw in ws:
                event = _parse_message(raw)
                if event is not None:
                    yield event


def _parse_message(raw: str | bytes) -> dict[str, Any] | None:
    """Parse a raw WebSocket message and extract a trade event.

    Combined-stream messages (``{"stream": ..., "data": {...}}``) are
    unwrapped first. Return ``None`` for non-trade or malformed payloads.

    Args:
        raw: Raw WebSocket message (string or bytes).

    Returns:
        The trade event dictionary, or ``None``.

    """
    try:
        data: Any = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        logger.debug("Ignoring unparseable message: %s", raw[:100] if raw else raw)
        return None

    if not isinstance(data, dict):
        return None
    event = cast("dict[str, Any]", data)
    inner = event.get("data")
    if "stream" in event and isinstance(inner, dict):
        event = cast("dict[str, Any]", inner)
    return event if _is_trade_event(event) else None


def _is_trade_event(event: dict[str, Any]) -> bool:
    """Check whether an event is a Binance ``trade`` event.

    Args:
        event: Parsed event dictionary.

    Returns:
        True if the event type is ``trade``.

    """
    return event.get("e") == "trade"
