"""Shared helpers for the whale watch CLI commands.

Centralise logging setup, the default server URL, and error reporting so
each command module stays small.
"""

import logging

import typer

from whale_watch.core.exceptions import WatcherAPIError

DEFAULT_SERVER_URL = "http://localhost:3000"


def configure_logging(*, verbose: bool) -> None:
    """Configure root logging at DEBUG when verbose, INFO otherwise."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def fail(message: str) -> typer.Exit:
    """Print ``message`` to stderr and return an exit with code 1 to raise."""
    typer.echo(f"Error: {message}", err=True)
    return typer.Exit(code=1)


def describe_api_error(exc: Exception) -> str:
    """Render a server or connection error for the terminal."""
    if isinstance(exc, WatcherAPIError):
        return f"server returned {exc.status_code}: {exc.detail}"
    return f"could not reach server ({exc})"
