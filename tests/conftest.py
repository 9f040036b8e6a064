"""Shared test configuration and fixtures."""

import os
from collections.abc import Iterator
from unittest.mock import patch

import pytest

_ENV_PREFIX = "WHALE_WATCH_"


@pytest.fixture(autouse=True)
def _isolate_env() -> Iterator[None]:  # pyright: ignore[reportUnusedFunction]
    """Hide ``WHALE_WATCH_*`` variables from the developer's shell.

    The packaged ``settings.yaml`` reads host, port, and feed URL from the
    environment with defaults; tests that load it expect those defaults.
    """
    cleaned = {k: v for k, v in os.environ.items() if not k.startswith(_ENV_PREFIX)}
    with patch.dict(os.environ, cleaned, clear=True):
        yield
