"""JSON-compatible records handed to the fan-out transport and HTTP surface.

Convert detector and aggregator values into plain dictionaries. Amounts are
rendered as fixed-precision strings so viewers never see binary float noise;
timestamps on trade records are ISO-8601 UTC strings.
"""

from collections.abc import Sequence
from decimal import Decimal
from typing import Any

from whale_watch.core.models import (
    CRITICAL_THRESHOLD,
    Candle,
    ChartSeries,
    IndicatorSnapshot,
    MetricsSnapshot,
    Severity,
    Trade,
)
from whale_watch.core.timestamps import to_iso


def _fixed(value: Decimal | None, places: int) -> str | None:
    """Render ``value`` with ``places`` decimal places, passing ``None`` through."""
    if value is None:
        return None
    return f"{value:.{places}f}"


def classify_severity(
    notional: Decimal,
    critical_threshold: Decimal = CRITICAL_THRESHOLD,
) -> Severity:
    """Return ``CRITICAL`` above ``critical_threshold`` notional, else ``HIGH``."""
    return Severity.CRITICAL if notional > critical_threshold else Severity.HIGH


def trade_update_record(trade: Trade) -> dict[str, Any]:
    """Build the per-trade update record broadcast for every processed trade."""
    return {
        "price": _fixed(trade.price, 2),
        "quantity": _fixed(trade.quantity, 6),
        "notional_value": _fixed(trade.notional_value, 2),
        "timestamp": to_iso(trade.timestamp),
        "is_whale": trade.is_whale,
    }


def whale_alert_record(
    trade: Trade,
    *,
    base_asset: str = "BTC",
    critical_threshold: Decimal = CRITICAL_THRESHOLD,
) -> dict[str, Any]:
    """Build the whale alert record: the trade update plus severity and message.

    Args:
        trade: A trade already classified as a whale.
        base_asset: Base asset ticker used in the human-readable message.
        critical_threshold: Notional above which the alert is critical.

    Returns:
        Dictionary with the trade-update fields, ``severity`` and ``message``.

    """
    record = trade_update_record(trade)
    record["severity"] = classify_severity(trade.notional_value, critical_threshold).value
    record["message"] = (
        f"WHALE ALERT: {trade.quantity:.4f} {base_asset} at ${trade.price:,.2f} "
        f"(${trade.notional_value:,.2f})"
    )
    return record


def metrics_record(snapshot: MetricsSnapshot) -> dict[str, Any]:
    """Build the metrics record from a detector snapshot."""
    return {
        "whale_count": snapshot.whale_count,
        "max_whale_amount": _fixed(snapshot.max_whale_amount, 2),
        "total_whale_value": _fixed(snapshot.total_whale_value, 2),
        "average_whale_size": _fixed(snapshot.average_whale_size, 2),
        "last_whale_time": (
            to_iso(snapshot.last_whale_time) if snapshot.last_whale_time is not None else None
        ),
        "current_price": _fixed(snapshot.current_price, 2),
        "hourly_volume": _fixed(snapshot.hourly_volume, 4),
        "history_size": snapshot.history_size,
    }


def chart_record(series: ChartSeries) -> dict[str, Any]:
    """Build the chart record: parallel label, price, volume, and timestamp lists."""
    return {
        "labels": list(series.labels),
        "prices": [_fixed(p, 2) for p in series.prices],
        "volumes": [_fixed(v, 4) for v in series.volumes],
        "timestamps": list(series.timestamps),
    }


def candles_record(candles: Sequence[Candle]) -> list[dict[str, Any]]:
    """Build a list of candle dictionaries, ascending by bucket start."""
    return [
        {
            "timestamp": c.timestamp,
            "open": _fixed(c.open, 2),
            "high": _fixed(c.high, 2),
            "low": _fixed(c.low, 2),
            "close": _fixed(c.close, 2),
            "volume": _fixed(c.volume, 4),
            "trade_count": c.trade_count,
        }
        for c in candles
    ]


def indicators_record(snapshot: IndicatorSnapshot) -> dict[str, Any]:
    """Build the indicator record; moving averages are ``None`` until warmed up."""
    return {
        "sma": _fixed(snapshot.sma, 2),
        "ema": _fixed(snapshot.ema, 2),
        "momentum": _fixed(snapshot.momentum, 2),
        "sma_period": snapshot.sma_period,
        "ema_period": snapshot.ema_period,
        "momentum_period": snapshot.momentum_period,
    }


def candle_from_record(record: dict[str, Any]) -> Candle:
    """Rebuild a ``Candle`` from a dictionary produced by ``candles_record``.

    Raises:
        KeyError: If a field is missing.
        decimal.InvalidOperation: If an amount is not a decimal string.

    """
    return Candle(
        timestamp=int(record["timestamp"]),
        open=Decimal(record["open"]),
        high=Decimal(record["high"]),
        low=Decimal(record["low"]),
        close=Decimal(record["close"]),
        volume=Decimal(record["volume"]),
        trade_count=int(record["trade_count"]),
    )
