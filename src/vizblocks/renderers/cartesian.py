"""Bar, line and area renderers.

Each value field is a series drawn against the category field. Bars of
multiple series are grouped side by side; lines and areas share the axes.
"""

from __future__ import annotations

import html
from typing import TYPE_CHECKING, Any

import polars as pl

from vizblocks.exceptions import MissingRequiredConfig
from vizblocks.renderers.base import (
    chart_size,
    fmt,
    format_value,
    render_empty,
    render_title,
    require_colors,
    resolve_fields,
    svg_open,
)

if TYPE_CHECKING:
    from vizblocks.container import Container


MARGIN = {"top": 20, "right": 20, "bottom": 60, "left": 60}
TICK_COUNT = 5
LABEL_LENGTH = 12


def render_bar(container: "Container", data: pl.DataFrame, config: dict[str, Any]) -> None:
    _render_cartesian(container, data, config, _draw_bars)


def render_line(container: "Container", data: pl.DataFrame, config: dict[str, Any]) -> None:
    _render_cartesian(container, data, config, _draw_lines)


def render_area(container: "Container", data: pl.DataFrame, config: dict[str, Any]) -> None:
    _render_cartesian(container, data, config, _draw_areas)


def _render_cartesian(container: "Container", data: pl.DataFrame, config: dict[str, Any], draw) -> None:
    container.clear()
    colors = require_colors(config)
    width, height = chart_size(container, config)
    title = render_title(config.get("title", ""))
    category, value_fields = resolve_fields(data, config)

    if data.height == 0:
        container.append_html(title + render_empty(width, height))
        return
    if not value_fields:
        raise MissingRequiredConfig(
            f"{config.get('chart_type', 'Chart')} chart needs a numeric value field (visualize.rows)",
            attribute="rows",
            chart_type=config.get("chart_type"),
            block_index=config.get("block_index"),
        )
    missing = [f for f in value_fields if f not in data.columns]
    if missing:
        raise MissingRequiredConfig(
            f"Value field(s) {missing} not found in data. Available: {data.columns}",
            attribute="rows",
            chart_type=config.get("chart_type"),
            block_index=config.get("block_index"),
        )

    labels = (
        [str(v) for v in data.get_column(category).to_list()]
        if category and category in data.columns
        else [str(i + 1) for i in range(data.height)]
    )
    series = [
        (field, [v if v is not None else 0.0 for v in data.get_column(field).cast(pl.Float64, strict=False).to_list()])
        for field in value_fields
    ]

    all_values = [v for _, values in series for v in values]
    scale = _Scale(min(0.0, min(all_values)), max(0.0, max(all_values)), width, height)

    parts = [
        svg_open(width, height, config.get("chart_type", "bar")),
        _draw_axes(scale, labels, banded=draw is _draw_bars),
    ]
    parts.append(draw(scale, labels, series, colors))
    if len(series) > 1:
        parts.append(_draw_series_legend([f for f, _ in series], colors, width))
    parts.append("</svg>")
    container.append_html(title + "".join(parts))


class _Scale:
    """Maps data values to plot coordinates."""

    def __init__(self, low: float, high: float, width: float, height: float) -> None:
        self.low = low
        self.high = high if high != low else low + 1
        self.width = width
        self.height = height
        self.plot_width = max(1.0, width - MARGIN["left"] - MARGIN["right"])
        self.plot_height = max(1.0, height - MARGIN["top"] - MARGIN["bottom"])

    def y(self, value: float) -> float:
        ratio = (value - self.low) / (self.high - self.low)
        return MARGIN["top"] + self.plot_height - ratio * self.plot_height

    def band(self, index: int, count: int) -> tuple[float, float]:
        """Left edge and width of category ``index``'s band."""
        step = self.plot_width / max(count, 1)
        return MARGIN["left"] + index * step, step

    def point_x(self, index: int, count: int) -> float:
        if count <= 1:
            return MARGIN["left"] + self.plot_width / 2
        return MARGIN["left"] + index / (count - 1) * self.plot_width


def _draw_axes(scale: _Scale, labels: list[str], banded: bool = True) -> str:
    parts = []
    for i in range(TICK_COUNT + 1):
        value = scale.low + (scale.high - scale.low) * i / TICK_COUNT
        y = scale.y(value)
        parts.append(
            f'<line x1="{MARGIN["left"]}" x2="{fmt(MARGIN["left"] + scale.plot_width)}" '
            f'y1="{fmt(y)}" y2="{fmt(y)}" class="vb-grid-line" stroke="#E5E7EB"/>'
            f'<text x="{MARGIN["left"] - 8}" y="{fmt(y)}" text-anchor="end" '
            f'dominant-baseline="middle" class="vb-axis-label">{format_value(round(value, 2))}</text>'
        )
    for i, label in enumerate(labels):
        if banded:
            left, step = scale.band(i, len(labels))
            x = left + step / 2
        else:
            x = scale.point_x(i, len(labels))
        y = scale.height - MARGIN["bottom"] + 20
        parts.append(
            f'<text x="{fmt(x)}" y="{fmt(y)}" text-anchor="middle" class="vb-axis-label" '
            f'transform="rotate(-45 {fmt(x)} {fmt(y)})">{html.escape(label[:LABEL_LENGTH])}</text>'
        )
    return "".join(parts)


def _draw_bars(scale: _Scale, labels, series, colors) -> str:
    bars = []
    n_series = len(series)
    baseline = scale.y(max(scale.low, 0.0))
    for i, label in enumerate(labels):
        left, step = scale.band(i, len(labels))
        gap = step * 0.2
        bar_width = (step - gap) / n_series
        for s, (field, values) in enumerate(series):
            value = values[i]
            y = scale.y(value)
            top, bar_height = (y, baseline - y) if value >= 0 else (baseline, y - baseline)
            color = colors[(s if n_series > 1 else i) % len(colors)]
            bars.append(
                f'<rect x="{fmt(left + gap / 2 + s * bar_width)}" y="{fmt(top)}" '
                f'width="{fmt(bar_width)}" height="{fmt(bar_height)}" fill="{html.escape(color)}" rx="4">'
                f"<title>{html.escape(label)} / {html.escape(field)}: {format_value(value)}</title></rect>"
            )
    return "".join(bars)


def _draw_lines(scale: _Scale, labels, series, colors, fill: bool = False) -> str:
    parts = []
    count = len(labels)
    for s, (field, values) in enumerate(series):
        color = html.escape(colors[s % len(colors)])
        points = [(scale.point_x(i, count), scale.y(v)) for i, v in enumerate(values)]
        path = "M " + " L ".join(f"{fmt(x)},{fmt(y)}" for x, y in points)
        if fill:
            baseline = scale.y(max(scale.low, 0.0))
            area = f"{path} L {fmt(points[-1][0])},{fmt(baseline)} L {fmt(points[0][0])},{fmt(baseline)} Z"
            parts.append(f'<path d="{area}" fill="{color}" fill-opacity="0.3" stroke="none"/>')
        parts.append(f'<path d="{path}" fill="none" stroke="{color}" stroke-width="2"/>')
        for (x, y), label, value in zip(points, labels, values):
            parts.append(
                f'<circle cx="{fmt(x)}" cy="{fmt(y)}" r="4" fill="{color}">'
                f"<title>{html.escape(label)} / {html.escape(field)}: {format_value(value)}</title></circle>"
            )
    return "".join(parts)


def _draw_areas(scale: _Scale, labels, series, colors) -> str:
    return _draw_lines(scale, labels, series, colors, fill=True)


def _draw_series_legend(fields: list[str], colors: list[str], width: float) -> str:
    items = []
    x = MARGIN["left"]
    for s, field in enumerate(fields):
        items.append(
            f'<g transform="translate({fmt(x)}, 0)">'
            f'<rect width="12" height="12" rx="2" fill="{html.escape(colors[s % len(colors)])}"/>'
            f'<text x="16" y="10" font-size="11" fill="#374151">{html.escape(field)}</text></g>'
        )
        x += 20 + 7 * len(field)
        if x > width - MARGIN["right"]:
            break
    return f'<g class="vb-series-legend">{"".join(items)}</g>'
