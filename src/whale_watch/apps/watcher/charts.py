# pyright: reportMissingTypeStubs=false, reportUnknownMemberType=false, reportUnknownArgumentType=false, reportUnknownVariableType=false
"""Interactive Plotly candle charts for the whale watcher.

Render candles with SMA/EMA overlays, a volume panel, and a momentum
oscillator panel. Charts use a dark theme and can be displayed in the
browser or saved to HTML files.
"""

from __future__ import annotations

import tempfile
import webbrowser
from typing import TYPE_CHECKING

import plotly.graph_objects as go
from plotly.subplots import make_subplots

from whale_watch.apps.detector.indicators import (
    MovingAverageKind,
    momentum_oscillator,
    moving_average_series,
)
from whale_watch.core.timestamps import to_datetime

if TYPE_CHECKING:
    from collections.abc import Sequence
    from decimal import Decimal
    from pathlib import Path

    from whale_watch.core.models import Candle

_BG_COLOR = "#1e1e2f"
_PAPER_COLOR = "#1e1e2f"
_GRID_COLOR = "#2e2e3e"
_TEXT_COLOR = "#e0e0e0"
_GREEN = "#00c853"
_RED = "#ff1744"
_ORANGE = "#f7931a"
_BLUE = "#2979ff"
_REFERENCE_DASH = "dash"
_OVERBOUGHT = 70
_OVERSOLD = 30


def _apply_dark_theme(fig: go.Figure) -> go.Figure:
    """Apply a consistent dark theme to a Plotly figure.

    Args:
        fig: The Plotly figure to style.

    Returns:
        The same figure, mutated in place, for chaining convenience.

    """
    fig.update_layout(
        template="plotly_dark",
        plot_bgcolor=_BG_COLOR,
        paper_bgcolor=_PAPER_COLOR,
        font_color=_TEXT_COLOR,
        legend={"bgcolor": "rgba(0,0,0,0)"},
        margin={"l": 60, "r": 30, "t": 50, "b": 40},
    )
    fig.update_xaxes(gridcolor=_GRID_COLOR, zeroline=False)
    fig.update_yaxes(gridcolor=_GRID_COLOR, zeroline=False)
    return fig


def _optional_floats(values: Sequence[Decimal | None]) -> list[float | None]:
    """Convert Decimals to floats for Plotly, keeping gaps as ``None``."""
    return [float(v) if v is not None else None for v in values]


def build_momentum_series(closes: Sequence[Decimal], period: int) -> list[float]:
    """Compute the momentum oscillator at every position of ``closes``.

    Positions without ``period + 1`` closes yet read as the neutral 50.
    """
    return [float(momentum_oscillator(closes[: i + 1], period)) for i in range(len(closes))]


def create_candle_chart(
    candles: Sequence[Candle],
    *,
    title: str = "BTC/USDT",
    sma_period: int = 20,
    ema_period: int = 12,
    momentum_period: int = 14,
) -> go.Figure:
    """Create a candlestick chart with moving-average overlays and panels.

    Row 1 holds the candles plus SMA and EMA lines over the closes, row 2
    the per-candle volume, and row 3 the momentum oscillator with dashed
    70/30 reference lines.

    Args:
        candles: Candles ascending by bucket start.
        title: Chart title.
        sma_period: Period of the SMA overlay.
        ema_period: Period of the EMA overlay.
        momentum_period: Period of the momentum oscillator.

    Returns:
        A Plotly ``Figure`` with three stacked subplots.

    Raises:
        ValueError: If no candles are given.

    """
    if not candles:
        msg = "Cannot create candle chart: no candles"
        raise ValueError(msg)

    times = [to_datetime(c.timestamp) for c in candles]
    closes = [c.close for c in candles]

    fig = make_subplots(
        rows=3,
        cols=1,
        shared_xaxes=True,
        row_heights=[0.6, 0.2, 0.2],
        vertical_spacing=0.03,
        subplot_titles=("Price", "Volume", f"Momentum ({momentum_period})"),
    )
    fig.add_trace(
        go.Candlestick(
            x=times,
            open=[float(c.open) for c in candles],
            high=[float(c.high) for c in candles],
            low=[float(c.low) for c in candles],
            close=[float(c.close) for c in candles],
            name="Price",
            increasing_line_color=_GREEN,
            decreasing_line_color=_RED,
        ),
        row=1,
        col=1,
    )
    fig.add_trace(
        go.Scatter(
            x=times,
            y=_optional_floats(moving_average_series(closes, sma_period, MovingAverageKind.SMA)),
            mode="lines",
            name=f"SMA {sma_period}",
            line={"color": _ORANGE, "width": 1.5},
        ),
        row=1,
        col=1,
    )
    fig.add_trace(
        go.Scatter(
            x=times,
            y=_optional_floats(moving_average_series(closes, ema_period, MovingAverageKind.EMA)),
            mode="lines",
            name=f"EMA {ema_period}",
            line={"color": _BLUE, "width": 1.5},
        ),
        row=1,
        col=1,
    )
    fig.add_trace(
        go.Bar(
            x=times,
            y=[float(c.volume) for c in candles],
            name="Volume",
            marker_color=[_GREEN if c.close >= c.open else _RED for c in candles],
            showlegend=False,
        ),
        row=2,
        col=1,
    )
    fig.add_trace(
        go.Scatter(
            x=times,
            y=build_momentum_series(closes, momentum_period),
            mode="lines",
            name="Momentum",
            line={"color": _TEXT_COLOR, "width": 1},
            showlegend=False,
        ),
        row=3,
        col=1,
    )
    for level in (_OVERBOUGHT, _OVERSOLD):
        fig.add_hline(y=level, line_dash=_REFERENCE_DASH, line_color=_GRID_COLOR, row=3, col=1)

    fig.update_layout(title_text=title, height=800)
    fig.update_xaxes(rangeslider_visible=False, row=1, col=1)
    fig.update_yaxes(range=[0, 100], row=3, col=1)
    return _apply_dark_theme(fig)


def _to_html(fig: go.Figure) -> str:
    """Wrap a figure in a standalone HTML page."""
    return "\n".join(
        [
            "<html><head><title>Whale Watch</title></head><body>",
            fig.to_html(full_html=False, include_plotlyjs="cdn"),
            "</body></html>",
        ]
    )


def show_chart(fig: go.Figure) -> None:
    """Write the figure to a temporary HTML file and open it in the browser.

    The temp file is not automatically deleted, allowing the browser to
    load it fully.
    """
    with tempfile.NamedTemporaryFile(
        mode="w", suffix=".html", delete=False, prefix="whale_watch_"
    ) as tmp:
        tmp.write(_to_html(fig))
        tmp_path = tmp.name

    webbrowser.open(f"file://{tmp_path}")


def save_chart(fig: go.Figure, output_path: Path) -> None:
    """Save the figure to an HTML file at the given path.

    Raises:
        ValueError: If the output path does not end with ``.html``.

    """
    if output_path.suffix.lower() != ".html":
        msg = f"Output path must end with .html, got: {output_path}"
        raise ValueError(msg)
    output_path.write_text(_to_html(fig))
