"""CLI command printing the metrics of a running whale watch server."""

import asyncio
from typing import Annotated, Any

import httpx
import typer

from whale_watch.apps.watcher.cli._helpers import DEFAULT_SERVER_URL, describe_api_error, fail
from whale_watch.apps.watcher.client import WatcherClient
from whale_watch.core.exceptions import WatcherAPIError


async def _fetch_health(url: str) -> dict[str, Any]:
    """Fetch the health payload from the server at ``url``."""
    async with WatcherClient(url) as client:
        return await client.get_health()


def status(
    url: Annotated[str, typer.Option(help="Whale watch server URL")] = DEFAULT_SERVER_URL,
) -> None:
    """Print uptime, viewer count, and whale metrics from a running server."""
    try:
        health = asyncio.run(_fetch_health(url))
    except (WatcherAPIError, httpx.HTTPError) as exc:
        raise fail(describe_api_error(exc)) from exc

    metrics: dict[str, Any] = health.get("metrics", {})
    typer.echo(f"Status:          {health.get('status')}")
    typer.echo(f"Uptime:          {health.get('uptime')}s")
    typer.echo(f"Clients:         {health.get('connected_clients')}")
    typer.echo(f"Trades:          {health.get('trades_processed')}")
    typer.echo(f"Current price:   {metrics.get('current_price')}")
    typer.echo(f"Whales:          {metrics.get('whale_count')}")
    typer.echo(f"Largest whale:   {metrics.get('max_whale_amount')}")
    typer.echo(f"Average whale:   {metrics.get('average_whale_size')}")
    typer.echo(f"Last whale:      {metrics.get('last_whale_time') or '-'}")
    typer.echo(f"Volume (60s):    {metrics.get('hourly_volume')}")
