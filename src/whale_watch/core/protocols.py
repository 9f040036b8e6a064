"""Structural protocols for the pluggable collaborators around the detector.

Define the ``TradeSource`` and ``Broadcaster`` interfaces that decouple the
watcher service from the concrete exchange feed and fan-out transport. Any
class whose shape matches these protocols can be used without explicit
inheritance (structural subtyping), which lets tests drive the service with
in-memory fakes.
"""

from collections.abc import AsyncIterator
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class TradeSource(Protocol):
    """Async source of raw trade records.

    Implementors connect to an exchange, handle reconnection themselves,
    and yield JSON-compatible trade dictionaries in arrival order. The
    stream ends when the source is closed or gives up reconnecting.
    """

    def stream(self) -> AsyncIterator[dict[str, Any]]:
        """Yield raw trade records until closed."""
        ...

    async def close(self) -> None:
        """Stop the stream and release the connection."""
        ...


@runtime_checkable
class Broadcaster(Protocol):
    """Fan-out transport delivering named records to every subscriber."""

    async def broadcast(self, event: str, data: Any) -> None:
        """Deliver ``data`` under ``event`` to zero or more subscribers."""
        ...

    @property
    def client_count(self) -> int:
        """Return the number of connected subscribers."""
        ...
