"""CLI subpackage for the whale watch app.

Create the Typer application and register all command modules.
"""

import typer

from whale_watch.apps.watcher.cli.chart_cmd import chart
from whale_watch.apps.watcher.cli.serve_cmd import serve
from whale_watch.apps.watcher.cli.status_cmd import status

app = typer.Typer(help="Real-time whale trade watcher")

app.command()(serve)
app.command()(status)
app.command()(chart)

__all__ = ["app"]
