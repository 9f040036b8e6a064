"""HTTP client for the read-only query surface of a running watcher."""

from typing import Any, Self

import httpx

from whale_watch.core.exceptions import WatcherAPIError

_HTTP_BAD_REQUEST = 400


class WatcherClient:
    """Async HTTP client for a whale watch server's ``/api`` endpoints.

    Use as an async context manager so the underlying connection pool is
    closed when done.
    """

    BASE_URL = "http://localhost:3000"

    def __init__(
        self,
        base_url: str = BASE_URL,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Root URL of the server.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport, used by tests to mock the server.

        """
        self.base_url = base_url.rstrip("/")
        self._http_client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def __aenter__(self) -> Self:
        """Enter the async context."""
        return self

    async def __aexit__(self, *args: object) -> None:
        """Close the HTTP connection pool."""
        await self.close()

    async def close(self) -> None:
        """Close the HTTP connection pool."""
        await self._http_client.aclose()

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """Send a GET request and return parsed JSON.

        Raises:
            WatcherAPIError: When the server returns an error response.

        """
        if not path.startswith("/"):
            path = f"/{path}"
        response = await self._http_client.get(f"{self.base_url}{path}", params=params)
        if response.status_code >= _HTTP_BAD_REQUEST:
            self._handle_error(response)
        result: Any = response.json()
        return result

    async def get_health(self) -> dict[str, Any]:
        """Return the ``/health`` payload."""
        return await self.get("/health")

    async def get_metrics(self) -> dict[str, Any]:
        """Return the current metrics record."""
        return await self.get("/api/metrics")

    async def get_chart_data(self, window_minutes: int | None = None) -> dict[str, Any]:
        """Return the chart record over an optional lookback in minutes."""
        params = {"window_minutes": window_minutes} if window_minutes is not None else None
        return await self.get("/api/chart-data", params=params)

    async def get_candles(self, interval: int = 1) -> list[dict[str, Any]]:
        """Return candle records of ``interval`` minutes."""
        return await self.get("/api/candles", params={"interval": interval})

    @staticmethod
    def _handle_error(response: httpx.Response) -> None:
        """Raise a WatcherAPIError from an error response.

        Raises:
            WatcherAPIError: Always raised with the status code and detail.

        """
        try:
            data = response.json()
            detail = str(data.get("detail", f"HTTP {response.status_code}"))
        except Exception:  # noqa: BLE001
            detail = f"HTTP {response.status_code}"
        raise WatcherAPIError(status_code=response.status_code, detail=detail)
