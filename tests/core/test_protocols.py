"""Tests for core protocols."""

from collections.abc import AsyncIterator
from typing import Any

import pytest

from whale_watch.apps.watcher.broadcaster import ConnectionHub
from whale_watch.apps.watcher.ws_client import TradeFeed
from whale_watch.core.protocols import Broadcaster, TradeSource


class FakeSource:
    """A class that structurally satisfies TradeSource."""

    async def stream(self) -> AsyncIterator[dict[str, Any]]:
        """Yield one trade."""
        yield {"p": "100", "q": "1"}

    async def close(self) -> None:
        """Do nothing."""


class BadSource:
    """Missing close method."""

    async def stream(self) -> AsyncIterator[dict[str, Any]]:
        """Yield nothing."""
        return
        yield


class BadBroadcaster:
    """Missing client_count."""

    async def broadcast(self, event: str, data: Any) -> None:
        """Do nothing."""


class TestTradeSource:
    """Tests for TradeSource protocol."""

    def test_structural_match(self) -> None:
        """Test that FakeSource satisfies TradeSource."""
        assert isinstance(FakeSource(), TradeSource)

    def test_structural_mismatch(self) -> None:
        """Test that BadSource does not satisfy TradeSource."""
        assert not isinstance(BadSource(), TradeSource)

    def test_trade_feed_matches(self) -> None:
        """Test that the Binance feed satisfies TradeSource."""
        assert isinstance(TradeFeed(), TradeSource)

    @pytest.mark.asyncio
    async def test_stream_yields_records(self) -> None:
        """Test that a source yields raw records."""
        source: TradeSource = FakeSource()
        records = [r async for r in source.stream()]
        assert records == [{"p": "100", "q": "1"}]


class TestBroadcaster:
    """Tests for Broadcaster protocol."""

    def test_hub_matches(self) -> None:
        """Test that ConnectionHub satisfies Broadcaster."""
        assert isinstance(ConnectionHub(), Broadcaster)

    def test_structural_mismatch(self) -> None:
        """Test that BadBroadcaster does not satisfy Broadcaster."""
        assert not isinstance(BadBroadcaster(), Broadcaster)
