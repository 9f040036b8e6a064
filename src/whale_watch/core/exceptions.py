"""Exceptions raised by the whale watch core."""

from typing import Any


class WhaleWatchError(Exception):
    """Base exception for whale watch errors."""


class MalformedInputError(WhaleWatchError):
    """Raw trade record is missing a field or carries a non-numeric value.

    Non-fatal: the feed loop logs the record and continues with the next one.
    """

    def __init__(self, field: str, value: Any) -> None:
        """Initialize the error.

        Args:
            field: Name of the offending field (``price``, ``quantity``, ...).
            value: The raw value that failed to parse, or ``None`` if missing.

        """
        super().__init__(f"Malformed trade field {field!r}: {value!r}")
        self.field = field
        self.value = value


class WatcherAPIError(WhaleWatchError):
    """Error response from a running whale watch server's HTTP API."""

    def __init__(self, status_code: int, detail: str) -> None:
        """Initialize the API error.

        Args:
            status_code: HTTP status code of the response.
            detail: Error detail from the response body, or a generic message.

        """
        super().__init__(f"[{status_code}] {detail}")
        self.status_code = status_code
        self.detail = detail
