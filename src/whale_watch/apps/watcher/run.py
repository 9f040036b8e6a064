"""CLI entry point for the whale watch app.

All command logic lives in the cli subpackage.
"""

from whale_watch.apps.watcher.cli import app

__all__ = ["app", "main"]


def main() -> None:
    """Run the whale watch CLI application."""
    app()


if __name__ == "__main__":
    main()
