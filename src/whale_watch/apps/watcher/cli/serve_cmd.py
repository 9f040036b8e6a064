"""CLI command for running the whale watch server.

Launch the FastAPI application under uvicorn: the Binance trade feed, the
whale detector, the viewer WebSocket, and the read-only HTTP endpoints.
Settings come from the YAML config; CLI options override them.
"""

from dataclasses import replace
from decimal import Decimal
from typing import Annotated

import typer
import uvicorn

from whale_watch.apps.detector.config import load_detector_config
from whale_watch.apps.watcher.cli._helpers import configure_logging, fail
from whale_watch.apps.watcher.config import load_watcher_config
from whale_watch.apps.watcher.server import create_app
from whale_watch.core.config import ConfigError


def serve(
    host: Annotated[str | None, typer.Option(help="Bind address")] = None,
    port: Annotated[int | None, typer.Option(help="Bind port")] = None,
    feed_url: Annotated[str | None, typer.Option(help="Binance trade stream URL")] = None,
    threshold: Annotated[
        float | None, typer.Option(help="Whale notional threshold in quote currency")
    ] = None,
    verbose: Annotated[  # noqa: FBT002
        bool, typer.Option("--verbose", "-v", help="Enable debug logging")
    ] = False,
) -> None:
    """Run the whale watch server.

    Stream trades from Binance, flag whale trades, and broadcast trade
    updates, whale alerts, metrics, and chart data to viewers on ``/ws``.
    """
    configure_logging(verbose=verbose)

    try:
        watcher_config = load_watcher_config()
        detector_config = load_detector_config()
    except ConfigError as exc:
        raise fail(str(exc)) from exc

    overrides: dict[str, object] = {}
    if host is not None:
        overrides["host"] = host
    if port is not None:
        overrides["port"] = port
    if feed_url is not None:
        overrides["feed_url"] = feed_url
    watcher_config = replace(watcher_config, **overrides)
    if threshold is not None:
        if threshold <= 0:
            raise fail("--threshold must be positive")
        detector_config = replace(detector_config, whale_threshold=Decimal(str(threshold)))

    typer.echo(f"Starting whale watch on http://{watcher_config.host}:{watcher_config.port}")
    typer.echo(f"Feed: {watcher_config.feed_url}")
    typer.echo(f"Whale threshold: {detector_config.whale_threshold:,}")

    app = create_app(watcher_config, detector_config)
    uvicorn.run(
        app,
        host=watcher_config.host,
        port=watcher_config.port,
        log_level="debug" if verbose else "info",
    )
