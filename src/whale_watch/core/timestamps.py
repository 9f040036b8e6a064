"""Millisecond timestamp helpers shared by the detector and the transport."""

import time
from datetime import UTC, datetime

MS_PER_SECOND = 1000
# 9999-12-31T23:59:59.999Z, the last instant ``datetime`` can represent.
MAX_TIMESTAMP_MS = 253_402_300_799_999


def now_ms() -> int:
    """Return the current wall-clock time as epoch milliseconds."""
    return int(time.time() * MS_PER_SECOND)


def to_datetime(timestamp_ms: int) -> datetime:
    """Convert epoch milliseconds to a timezone-aware UTC ``datetime``."""
    return datetime.fromtimestamp(timestamp_ms / MS_PER_SECOND, tz=UTC)


def to_iso(timestamp_ms: int) -> str:
    """Format epoch milliseconds as an ISO-8601 UTC string.

    Args:
        timestamp_ms: Epoch milliseconds.

    Returns:
        String such as ``2024-01-01T12:00:00.123000+00:00``.

    """
    return to_datetime(timestamp_ms).isoformat()


def format_time_label(timestamp_ms: int) -> str:
    """Format epoch milliseconds as an ``HH:MM:SS`` chart axis label (UTC)."""
    return to_datetime(timestamp_ms).strftime("%H:%M:%S")
