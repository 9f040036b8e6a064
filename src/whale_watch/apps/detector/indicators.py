"""Technical indicator functions over bucketed closing prices.

Provide pure functions that compute moving averages and a momentum
oscillator from sequences of ``Decimal`` closes. Unlike strict validators,
these functions return a sentinel (``None`` for moving averages, a neutral
50 for the oscillator) when there is not yet enough data, because the chart
is polled from the first trade onward and a short series is the normal
state right after start-up.
"""

from collections.abc import Sequence
from decimal import Decimal
from enum import Enum

from whale_watch.core.models import FIFTY, HUNDRED, ONE, TWO, ZERO

DEFAULT_MOMENTUM_PERIOD = 14


class MovingAverageKind(Enum):
    """Flavour of moving average: simple or exponential."""

    SMA = "sma"
    EMA = "ema"


def _check_period(period: int) -> None:
    """Raise ``ValueError`` for a non-positive lookback period."""
    if period < 1:
        msg = f"period must be at least 1, got {period}"
        raise ValueError(msg)


def sma(values: Sequence[Decimal], period: int) -> Decimal | None:
    """Compute the simple moving average of the last ``period`` values.

    Args:
        values: Closing prices, oldest first.
        period: Number of values to average over.

    Returns:
        The arithmetic mean of the last ``period`` values, or ``None`` if
        fewer than ``period`` values are available.

    Raises:
        ValueError: If ``period`` is less than 1.

    """
    _check_period(period)
    if len(values) < period:
        return None
    return sum(values[-period:], ZERO) / Decimal(period)


def ema(values: Sequence[Decimal], period: int) -> Decimal | None:
    """Compute the exponential moving average over a sequence of values.

    Seed the EMA with the SMA of the first ``period`` values, then apply
    ``ema = prev + k * (value - prev)`` with ``k = 2 / (period + 1)`` to
    each later value in order.

    Args:
        values: Closing prices, oldest first.
        period: Lookback window for the EMA.

    Returns:
        The current EMA value, or ``None`` if fewer than ``period`` values
        are available.

    Raises:
        ValueError: If ``period`` is less than 1.

    """
    _check_period(period)
    if len(values) < period:
        return None
    multiplier = TWO / (Decimal(period) + ONE)
    result = sum(values[:period], ZERO) / Decimal(period)
    for val in values[period:]:
        result = (val - result) * multiplier + result
    return result


def moving_average(
    values: Sequence[Decimal],
    period: int,
    kind: MovingAverageKind = MovingAverageKind.SMA,
) -> Decimal | None:
    """Dispatch to ``sma`` or ``ema`` according to ``kind``."""
    if kind is MovingAverageKind.EMA:
        return ema(values, period)
    return sma(values, period)


def moving_average_series(
    values: Sequence[Decimal],
    period: int,
    kind: MovingAverageKind = MovingAverageKind.SMA,
) -> list[Decimal | None]:
    """Compute the moving average at every position of ``values``.

    Entry ``i`` is the average over ``values[: i + 1]``; the first
    ``period - 1`` entries are ``None``. Used for chart overlays.
    """
    _check_period(period)
    series: list[Decimal | None] = []
    if kind is MovingAverageKind.SMA:
        divisor = Decimal(period)
        running = ZERO
        for i, val in enumerate(values):
            running += val
            if i >= period:
                running -= values[i - period]
            series.append(running / divisor if i + 1 >= period else None)
        return series

    multiplier = TWO / (Decimal(period) + ONE)
    current: Decimal | None = None
    for i, val in enumerate(values):
        if i + 1 < period:
            series.append(None)
            continue
        if current is None:
            current = sum(values[:period], ZERO) / Decimal(period)
        else:
            current = (val - current) * multiplier + current
        series.append(current)
    return series


def momentum_oscillator(
    values: Sequence[Decimal],
    period: int = DEFAULT_MOMENTUM_PERIOD,
) -> Decimal:
    """Compute an RSI-style momentum oscillator over the trailing deltas.

    Average gain and average loss are plain means over the last ``period``
    price deltas (no Wilder smoothing).

    Args:
        values: Closing prices, oldest first.
        period: Number of trailing deltas to consider.

    Returns:
        A value between 0 and 100. Exactly 100 when the average loss is
        zero; the neutral 50 when fewer than ``period + 1`` values exist.

    Raises:
        ValueError: If ``period`` is less than 1.

    """
    _check_period(period)
    if len(values) < period + 1:
        return FIFTY
    recent = values[-(period + 1) :]
    deltas = [recent[i] - recent[i - 1] for i in range(1, len(recent))]

    dec_period = Decimal(period)
    avg_gain = sum((d for d in deltas if d > ZERO), ZERO) / dec_period
    avg_loss = sum((-d for d in deltas if d < ZERO), ZERO) / dec_period

    if avg_loss == ZERO:
        return HUNDRED
    rs = avg_gain / avg_loss
    return HUNDRED - HUNDRED / (ONE + rs)
