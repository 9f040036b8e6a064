"""CLI command rendering a candle chart from a running whale watch server.

Fetch candles over the server's rolling history, overlay SMA/EMA and the
momentum oscillator, and either save the chart as HTML or open it in the
browser.
"""

import asyncio
from decimal import InvalidOperation
from pathlib import Path
from typing import Annotated

import httpx
import typer

from whale_watch.apps.detector.records import candle_from_record
from whale_watch.apps.watcher.charts import create_candle_chart, save_chart, show_chart
from whale_watch.apps.watcher.cli._helpers import DEFAULT_SERVER_URL, describe_api_error, fail
from whale_watch.apps.watcher.client import WatcherClient
from whale_watch.core.exceptions import WatcherAPIError
from whale_watch.core.models import Candle, CandleInterval


async def _fetch_candles(url: str, interval: int) -> list[Candle]:
    """Fetch candle records from the server and rebuild ``Candle`` objects."""
    async with WatcherClient(url) as client:
        records = await client.get_candles(interval)
    return [candle_from_record(r) for r in records]


def chart(
    url: Annotated[str, typer.Option(help="Whale watch server URL")] = DEFAULT_SERVER_URL,
    interval: Annotated[int, typer.Option(help="Candle width in minutes (1, 5, 15, 60)")] = 1,
    sma_period: Annotated[int, typer.Option(help="SMA overlay period")] = 20,
    ema_period: Annotated[int, typer.Option(help="EMA overlay period")] = 12,
    momentum_period: Annotated[int, typer.Option(help="Momentum oscillator period")] = 14,
    output: Annotated[
        Path | None, typer.Option(help="Save chart to this .html file instead of opening it")
    ] = None,
) -> None:
    """Render a candle chart with indicator overlays from a running server."""
    try:
        width = CandleInterval.from_minutes(interval)
    except ValueError as exc:
        raise fail(str(exc)) from exc

    try:
        candles = asyncio.run(_fetch_candles(url, width.minutes))
    except (WatcherAPIError, httpx.HTTPError) as exc:
        raise fail(describe_api_error(exc)) from exc
    except (KeyError, InvalidOperation) as exc:
        raise fail(f"unexpected candle payload ({exc})") from exc

    if not candles:
        typer.echo("No trades in the rolling history yet.")
        return

    fig = create_candle_chart(
        candles,
        title=f"BTC/USDT {width.minutes}m",
        sma_period=sma_period,
        ema_period=ema_period,
        momentum_period=momentum_period,
    )
    if output is not None:
        try:
            save_chart(fig, output)
        except ValueError as exc:
            raise fail(str(exc)) from exc
        typer.echo(f"Chart saved to {output} ({len(candles)} candles)")
    else:
        show_chart(fig)
