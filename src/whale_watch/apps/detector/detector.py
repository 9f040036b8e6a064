"""Whale trade classifier with a capacity-bounded rolling trade history.

Ingest raw trade records one at a time, compute notional value, flag whale
trades, append every trade to a FIFO-evicting rolling history, and keep the
running whale metrics plus a short accumulated-volume window. One lock
serialises all mutations and snapshot reads so HTTP readers running on
worker threads never observe a half-applied trade.
"""

import logging
import threading
import time
from collections import deque
from collections.abc import Callable, Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

from whale_watch.apps.detector.config import DetectorConfig
from whale_watch.core.exceptions import MalformedInputError
from whale_watch.core.models import ZERO, MetricsSnapshot, Trade
from whale_watch.core.timestamps import MAX_TIMESTAMP_MS, MS_PER_SECOND, now_ms

logger = logging.getLogger(__name__)

_PRICE_KEYS = ("p", "price")
_QUANTITY_KEYS = ("q", "quantity")
_TIMESTAMP_KEYS = ("T", "timestamp")
# Accepted amounts stay below 1e18.
_MAX_AMOUNT_EXPONENT = 17


def _monotonic_ms() -> int:
    """Return the monotonic clock in milliseconds."""
    return int(time.monotonic() * MS_PER_SECOND)


def _first_present(raw: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    """Return the value of the first key in ``keys`` present in ``raw``, else None."""
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def parse_amount(raw: Mapping[str, Any], keys: tuple[str, ...], field: str) -> Decimal:
    """Parse a finite, non-negative decimal amount from a raw trade record.

    Values are converted through ``str`` so floats keep their printed
    representation rather than their binary expansion.

    Args:
        raw: Raw trade record.
        keys: Candidate keys, checked in order (short Binance key first).
        field: Field name reported in the error.

    Returns:
        The parsed amount.

    Raises:
        MalformedInputError: If the value is missing, non-numeric,
            non-finite, negative, or at least 1e18.

    """
    value = _first_present(raw, keys)
    if value is None or isinstance(value, bool):
        raise MalformedInputError(field, value)
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise MalformedInputError(field, value) from None
    if not amount.is_finite() or amount < ZERO:
        raise MalformedInputError(field, value)
    if amount and amount.adjusted() > _MAX_AMOUNT_EXPONENT:
        raise MalformedInputError(field, value)
    return amount


def parse_timestamp(raw: Mapping[str, Any]) -> int | None:
    """Parse the optional epoch-millisecond timestamp of a raw trade record.

    Returns:
        The timestamp, or ``None`` if the record carries none.

    Raises:
        MalformedInputError: If a timestamp is present but is not an integer
            between the epoch and the end of year 9999.

    """
    value = _first_present(raw, _TIMESTAMP_KEYS)
    if value is None:
        return None
    if isinstance(value, bool):
        raise MalformedInputError("timestamp", value)
    try:
        timestamp = int(value)
    except (TypeError, ValueError, OverflowError):
        raise MalformedInputError("timestamp", value) from None
    if not 0 <= timestamp <= MAX_TIMESTAMP_MS:
        raise MalformedInputError("timestamp", value)
    return timestamp


class WhaleDetector:
    """Classify trades and own the rolling history and whale metrics.

    Example::

        detector = WhaleDetector()
        trade = detector.process_trade({"p": "65000.00", "q": "10", "T": 1700000000000})
        trade.is_whale  # True: 650,000 > 500,000
        detector.get_metrics().whale_count  # 1

    Args:
        config: Thresholds and capacities; defaults apply when omitted.
        clock: Wall clock in epoch milliseconds, used when a record has no
            timestamp.
        monotonic: Monotonic clock in milliseconds, used for the short
            volume window so it is immune to wall-clock jumps.

    """

    def __init__(
        self,
        config: DetectorConfig | None = None,
        *,
        clock: Callable[[], int] = now_ms,
        monotonic: Callable[[], int] = _monotonic_ms,
    ) -> None:
        """Initialize an empty detector."""
        self._config = config or DetectorConfig()
        self._clock = clock
        self._monotonic = monotonic
        self._lock = threading.Lock()
        self._history: deque[Trade] = deque(maxlen=self._config.max_history)
        self._whale_count = 0
        self._max_whale_amount = ZERO
        self._total_whale_value = ZERO
        self._last_whale_time: int | None = None
        self._last_price = ZERO
        self._window_volume = ZERO
        self._window_started = self._monotonic()

    @property
    def config(self) -> DetectorConfig:
        """Return the detector configuration."""
        return self._config

    def process_trade(self, raw: Mapping[str, Any]) -> Trade:
        """Classify one raw trade record and record it.

        Parse price and quantity, flag the trade as a whale when its notional
        value exceeds the configured threshold, append it to the rolling
        history (evicting the oldest entry at capacity), advance the short
        volume window, and update whale metrics before returning.

        Args:
            raw: JSON-compatible record with a price (``p``/``price``), a
                quantity (``q``/``quantity``), and optionally a timestamp
                (``T``/``timestamp``) in epoch milliseconds.

        Returns:
            The immutable classified ``Trade``.

        Raises:
            MalformedInputError: If price, quantity, or a present timestamp
                cannot be parsed, or their notional value overflows.
                Detector state is left untouched.

        """
        price = parse_amount(raw, _PRICE_KEYS, "price")
        quantity = parse_amount(raw, _QUANTITY_KEYS, "quantity")
        timestamp = parse_timestamp(raw)
        if timestamp is None:
            timestamp = self._clock()
        try:
            trade = Trade.classify(price, quantity, timestamp, self._config.whale_threshold)
        except ArithmeticError:
            raise MalformedInputError("notional_value", f"{price} * {quantity}") from None

        with self._lock:
            now = self._monotonic()
            window_expired = now - self._window_started >= self._config.volume_window_ms
            try:
                window_volume = (ZERO if window_expired else self._window_volume) + quantity
                total = self._total_whale_value
                if trade.is_whale:
                    total += trade.notional_value
            except ArithmeticError:
                raise MalformedInputError("quantity", quantity) from None

            self._history.append(trade)
            self._last_price = price
            if window_expired:
                self._window_started = now
            self._window_volume = window_volume
            if trade.is_whale:
                self._record_whale(trade, total)

        return trade

    def _record_whale(self, trade: Trade, total: Decimal) -> None:
        """Update whale metrics to the precomputed ``total``. Caller must hold the lock."""
        notional = trade.notional_value
        self._whale_count += 1
        self._total_whale_value = total
        self._max_whale_amount = max(self._max_whale_amount, notional)
        self._last_whale_time = trade.timestamp
        logger.debug("Whale #%d: %s notional", self._whale_count, notional)

    def get_metrics(self) -> MetricsSnapshot:
        """Return a read-only snapshot of the metrics and current market state."""
        with self._lock:
            average = (
                self._total_whale_value / self._whale_count if self._whale_count else ZERO
            )
            return MetricsSnapshot(
                whale_count=self._whale_count,
                max_whale_amount=self._max_whale_amount,
                total_whale_value=self._total_whale_value,
                average_whale_size=average,
                last_whale_time=self._last_whale_time,
                current_price=self._last_price,
                hourly_volume=self._window_volume,
                history_size=len(self._history),
            )

    def history(self) -> tuple[Trade, ...]:
        """Return a copy of the rolling history, oldest first."""
        with self._lock:
            return tuple(self._history)

    def __len__(self) -> int:
        """Return the number of trades currently held in the history."""
        with self._lock:
            return len(self._history)

    def reset(self) -> None:
        """Clear metrics, the rolling history, and the volume window.

        Not called automatically; a scheduler decides the cadence.
        """
        with self._lock:
            self._history.clear()
            self._whale_count = 0
            self._max_whale_amount = ZERO
            self._total_whale_value = ZERO
            self._last_whale_time = None
            self._last_price = ZERO
            self._window_volume = ZERO
            self._window_started = self._monotonic()
        logger.info("Detector metrics and history reset")
