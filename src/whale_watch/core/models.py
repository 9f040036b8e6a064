"""Core data models shared across the whale watch application.

Define the immutable value objects (Trade, Candle, ChartSeries,
MetricsSnapshot, IndicatorSnapshot) that flow from the detector to the
aggregator, the transport records, and the HTTP surface.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

ZERO = Decimal(0)
ONE = Decimal(1)
TWO = Decimal(2)
FIFTY = Decimal(50)
HUNDRED = Decimal(100)

WHALE_THRESHOLD = Decimal(500_000)
CRITICAL_THRESHOLD = Decimal(1_000_000)
MAX_HISTORY = 3600
VOLUME_WINDOW_MS = 60_000
DEFAULT_BUCKET_MS = 60_000
DEFAULT_WINDOW_MS = 3_600_000
MS_PER_MINUTE = 60_000


class Severity(Enum):
    """Alert severity attached to a whale trade."""

    HIGH = "high"
    CRITICAL = "critical"


class CandleInterval(Enum):
    """Supported candle widths, in minutes, for the candle view."""

    M1 = 1
    M5 = 5
    M15 = 15
    H1 = 60

    @property
    def minutes(self) -> int:
        """Return the interval width in minutes."""
        return self.value

    @classmethod
    def from_minutes(cls, minutes: int) -> "CandleInterval":
        """Look up the interval for a width in minutes.

        Raises:
            ValueError: If ``minutes`` is not a supported width.

        """
        try:
            return cls(minutes)
        except ValueError:
            supported = ", ".join(str(i.value) for i in cls)
            msg = f"Unsupported candle interval {minutes}m, expected one of: {supported}"
            raise ValueError(msg) from None


@dataclass(frozen=True)
class Trade:
    """Immutable record of one observed exchange execution.

    The whale flag is fixed at construction against the threshold in force
    at the time, so a trade never changes classification afterwards.
    """

    price: Decimal
    quantity: Decimal
    timestamp: int
    is_whale: bool = False

    @property
    def notional_value(self) -> Decimal:
        """Return price multiplied by quantity, in quote currency."""
        return self.price * self.quantity

    @classmethod
    def classify(
        cls,
        price: Decimal,
        quantity: Decimal,
        timestamp: int,
        threshold: Decimal = WHALE_THRESHOLD,
    ) -> "Trade":
        """Build a trade and flag it as a whale when notional exceeds ``threshold``.

        A notional value exactly equal to the threshold is not a whale.
        """
        return cls(
            price=price,
            quantity=quantity,
            timestamp=timestamp,
            is_whale=price * quantity > threshold,
        )


@dataclass(frozen=True)
class Candle:
    """Immutable OHLCV summary of the trades in one time bucket.

    ``timestamp`` is the bucket start in epoch milliseconds.
    """

    timestamp: int
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal
    trade_count: int


@dataclass(frozen=True)
class ChartSeries:
    """Parallel, ascending-by-time sequences describing the price chart."""

    labels: tuple[str, ...] = ()
    prices: tuple[Decimal, ...] = ()
    volumes: tuple[Decimal, ...] = ()
    timestamps: tuple[int, ...] = ()

    @property
    def is_empty(self) -> bool:
        """Return True when the series holds no buckets."""
        return not self.timestamps


@dataclass(frozen=True)
class MetricsSnapshot:
    """Read-only copy of the detector metrics at one point in time.

    ``hourly_volume`` is the base-asset quantity accumulated since the last
    reset of the short volume window, not an hour of volume.
    """

    whale_count: int = 0
    max_whale_amount: Decimal = ZERO
    total_whale_value: Decimal = ZERO
    average_whale_size: Decimal = ZERO
    last_whale_time: int | None = None
    current_price: Decimal = ZERO
    hourly_volume: Decimal = ZERO
    history_size: int = 0


@dataclass(frozen=True)
class IndicatorSnapshot:
    """Derived indicators over bucketed closing prices."""

    sma: Decimal | None
    ema: Decimal | None
    momentum: Decimal
    sma_period: int
    ema_period: int
    momentum_period: int
