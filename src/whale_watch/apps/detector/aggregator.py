"""Bucketed chart series, candles, and indicators from the rolling history.

Re-derive everything on demand from a snapshot of the detector's history;
the aggregator holds no bucket state of its own.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from decimal import Decimal

from whale_watch.apps.detector.detector import WhaleDetector
from whale_watch.apps.detector.indicators import ema, momentum_oscillator, sma
from whale_watch.core.models import (
    MS_PER_MINUTE,
    ZERO,
    Candle,
    ChartSeries,
    IndicatorSnapshot,
    Trade,
)
from whale_watch.core.timestamps import format_time_label, now_ms


@dataclass
class _Bucket:
    """Mutable accumulator for one chart bucket while grouping."""

    timestamp: int
    price: Decimal
    price_time: int
    volume: Decimal = ZERO


def bucket_start(timestamp: int, bucket_ms: int) -> int:
    """Floor ``timestamp`` to the start of its ``bucket_ms``-wide bucket."""
    return (timestamp // bucket_ms) * bucket_ms


def build_candles(trades: Iterable[Trade], interval_minutes: int) -> list[Candle]:
    """Group trades into OHLCV candles of ``interval_minutes`` width.

    Every supplied trade is used; no time window is applied. Within a bucket
    the open is the first trade seen in iteration order and the close the
    last one, so the caller's arrival order decides both.

    Args:
        trades: Trades in arrival order.
        interval_minutes: Candle width in minutes.

    Returns:
        One candle per non-empty bucket, ascending by bucket start.

    Raises:
        ValueError: If ``interval_minutes`` is not positive.

    """
    if interval_minutes < 1:
        msg = f"interval_minutes must be positive, got {interval_minutes}"
        raise ValueError(msg)
    bucket_ms = interval_minutes * MS_PER_MINUTE

    candles: dict[int, Candle] = {}
    for trade in trades:
        start = bucket_start(trade.timestamp, bucket_ms)
        current = candles.get(start)
        if current is None:
            candles[start] = Candle(
                timestamp=start,
                open=trade.price,
                high=trade.price,
                low=trade.price,
                close=trade.price,
                volume=trade.quantity,
                trade_count=1,
            )
            continue
        candles[start] = Candle(
            timestamp=start,
            open=current.open,
            high=max(current.high, trade.price),
            low=min(current.low, trade.price),
            close=trade.price,
            volume=current.volume + trade.quantity,
            trade_count=current.trade_count + 1,
        )
    return [candles[start] for start in sorted(candles)]


class ChartAggregator:
    """Derive chart data from a detector's rolling history.

    Hold no trade state of its own; every call reads a fresh copy of the
    history from the detector.

    Args:
        detector: The detector whose history is charted.
        bucket_ms: Chart bucket width; defaults to the detector config.
        clock: Wall clock in epoch milliseconds, used as "now" for windowing.

    """

    def __init__(
        self,
        detector: WhaleDetector,
        *,
        bucket_ms: int | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        """Initialize the aggregator over ``detector``."""
        self._detector = detector
        self._bucket_ms = bucket_ms or detector.config.bucket_ms
        self._clock = clock

    @property
    def bucket_ms(self) -> int:
        """Return the active bucket width in milliseconds."""
        return self._bucket_ms

    def _windowed(self, window_ms: int | None) -> list[Trade]:
        """Return history trades with ``timestamp >= now - window_ms``."""
        history = self._detector.history()
        if window_ms is None:
            return list(history)
        cutoff = self._clock() - window_ms
        return [t for t in history if t.timestamp >= cutoff]

    def get_chart_data(self, window_ms: int | None = None) -> ChartSeries:
        """Bucket the recent history into a price/volume chart series.

        Each bucket's volume is the sum of its trades' quantities and its
        price is that of its latest trade by timestamp; trades sharing a
        timestamp resolve to the later arrival.

        Args:
            window_ms: Lookback from now; defaults to the configured chart
                window (one hour).

        Returns:
            Parallel ascending sequences of labels, prices, volumes, and
            bucket timestamps. All empty when no trade falls in the window.

        """
        if window_ms is None:
            window_ms = self._detector.config.chart_window_ms
        buckets: dict[int, _Bucket] = {}
        for trade in self._windowed(window_ms):
            start = bucket_start(trade.timestamp, self._bucket_ms)
            bucket = buckets.get(start)
            if bucket is None:
                bucket = buckets[start] = _Bucket(
                    timestamp=start, price=trade.price, price_time=trade.timestamp
                )
            bucket.volume += trade.quantity
            if trade.timestamp >= bucket.price_time:
                bucket.price = trade.price
                bucket.price_time = trade.timestamp

        ordered = [buckets[start] for start in sorted(buckets)]
        return ChartSeries(
            labels=tuple(format_time_label(b.timestamp) for b in ordered),
            prices=tuple(b.price for b in ordered),
            volumes=tuple(b.volume for b in ordered),
            timestamps=tuple(b.timestamp for b in ordered),
        )

    def get_candles(self, interval_minutes: int, window_ms: int | None = None) -> list[Candle]:
        """Build candles over the history, optionally limited to a lookback window."""
        return build_candles(self._windowed(window_ms), interval_minutes)

    def get_indicators(self, window_ms: int | None = None) -> IndicatorSnapshot:
        """Compute SMA, EMA, and momentum over the chart series' bucket closes."""
        config = self._detector.config
        closes = list(self.get_chart_data(window_ms).prices)
        return IndicatorSnapshot(
            sma=sma(closes, config.sma_period),
            ema=ema(closes, config.ema_period),
            momentum=momentum_oscillator(closes, config.momentum_period),
            sma_period=config.sma_period,
            ema_period=config.ema_period,
            momentum_period=config.momentum_period,
        )
