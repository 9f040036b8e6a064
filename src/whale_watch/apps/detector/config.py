"""Configuration dataclass for the whale detector and chart aggregator.

Hold the classification thresholds, rolling-history capacity, and chart
granularity. Immutable after construction so a running detector cannot have
its thresholds changed underneath it.
"""

from dataclasses import dataclass
from decimal import Decimal

from whale_watch.core.config import ConfigError, ConfigLoader, get_config
from whale_watch.core.models import (
    CRITICAL_THRESHOLD,
    DEFAULT_BUCKET_MS,
    DEFAULT_WINDOW_MS,
    MAX_HISTORY,
    VOLUME_WINDOW_MS,
    WHALE_THRESHOLD,
)

_DEFAULT_SMA_PERIOD = 20
_DEFAULT_EMA_PERIOD = 12
_DEFAULT_MOMENTUM_PERIOD = 14


@dataclass(frozen=True)
class DetectorConfig:
    """Immutable configuration for a detector and its aggregator.

    Attributes:
        whale_threshold: Notional value a trade must exceed to be a whale.
        critical_threshold: Notional value above which a whale alert is
            ``critical`` rather than ``high``.
        max_history: Maximum number of trades kept in the rolling history.
        volume_window_ms: Length of the short accumulated-volume window.
        bucket_ms: Chart bucket width in milliseconds.
        chart_window_ms: Default lookback for the chart series.
        sma_period: Period of the simple moving average indicator.
        ema_period: Period of the exponential moving average indicator.
        momentum_period: Number of trailing deltas for the momentum oscillator.

    """

    whale_threshold: Decimal = WHALE_THRESHOLD
    critical_threshold: Decimal = CRITICAL_THRESHOLD
    max_history: int = MAX_HISTORY
    volume_window_ms: int = VOLUME_WINDOW_MS
    bucket_ms: int = DEFAULT_BUCKET_MS
    chart_window_ms: int = DEFAULT_WINDOW_MS
    sma_period: int = _DEFAULT_SMA_PERIOD
    ema_period: int = _DEFAULT_EMA_PERIOD
    momentum_period: int = _DEFAULT_MOMENTUM_PERIOD

    def __post_init__(self) -> None:
        """Validate capacities and periods are positive."""
        for name in (
            "max_history",
            "volume_window_ms",
            "bucket_ms",
            "chart_window_ms",
            "sma_period",
            "ema_period",
            "momentum_period",
        ):
            value = getattr(self, name)
            if value < 1:
                msg = f"{name} must be positive, got {value}"
                raise ValueError(msg)


def load_detector_config(loader: ConfigLoader | None = None) -> DetectorConfig:
    """Build a ``DetectorConfig`` from the ``detector`` section of the YAML settings.

    Missing keys fall back to the dataclass defaults.

    Args:
        loader: Config loader to read from; defaults to the global one.

    Raises:
        ConfigError: If a value cannot be converted or fails validation.

    """
    loader = loader or get_config()
    defaults = DetectorConfig()
    try:
        return DetectorConfig(
            whale_threshold=loader.get_decimal(
                "detector.whale_threshold", defaults.whale_threshold
            ),
            critical_threshold=loader.get_decimal(
                "detector.critical_threshold", defaults.critical_threshold
            ),
            max_history=loader.get_int("detector.max_history", defaults.max_history),
            volume_window_ms=loader.get_int("detector.volume_window_ms", defaults.volume_window_ms),
            bucket_ms=loader.get_int("detector.bucket_ms", defaults.bucket_ms),
            chart_window_ms=loader.get_int("detector.chart_window_ms", defaults.chart_window_ms),
            sma_period=loader.get_int("detector.sma_period", defaults.sma_period),
            ema_period=loader.get_int("detector.ema_period", defaults.ema_period),
            momentum_period=loader.get_int("detector.momentum_period", defaults.momentum_period),
        )
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc
