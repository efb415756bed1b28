"""Pie and doughnut renderer.

Draws slices as SVG paths and places the legend with
``compute_legend_layout``: beside the pie when the box is wide enough,
stacked below in rows otherwise.
"""

from __future__ import annotations

import html
import math
from typing import TYPE_CHECKING, Any

import polars as pl

from vizblocks.base import LegendPlacement
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
from vizblocks.renderers.layout import compute_legend_layout

if TYPE_CHECKING:
    from vizblocks.container import Container


DOUGHNUT_INNER_RATIO = 0.6


def render_pie(container: "Container", data: pl.DataFrame, config: dict[str, Any]) -> None:
    """Render a pie (or doughnut, when ``chart_type`` says so) chart."""
    container.clear()
    colors = require_colors(config)
    category, values = resolve_fields(data, config)
    if not values:
        raise MissingRequiredConfig(
            "Pie chart needs a numeric value field (visualize.rows)",
            attribute="rows",
            chart_type=config.get("chart_type"),
            block_index=config.get("block_index"),
        )
    value_field = values[0]
    width, height = chart_size(container, config)
    title = render_title(config.get("title", ""))

    labels = (
        [str(v) for v in data.get_column(category).to_list()]
        if category
        else [str(i + 1) for i in range(data.height)]
    )
    amounts = [
        float(v) if v is not None else 0.0
        for v in data.get_column(value_field).cast(pl.Float64, strict=False).to_list()
    ]
    total = sum(a for a in amounts if a > 0)
    if not amounts or total <= 0:
        container.append_html(title + render_empty(width, height))
        return

    layout = compute_legend_layout(width, height, len(amounts))
    radius = layout.radius
    inner_radius = radius * DOUGHNUT_INNER_RATIO if config.get("chart_type") == "doughnut" else 0.0

    slices = []
    current_angle = -90.0
    for i, (label, amount) in enumerate(zip(labels, amounts)):
        if amount <= 0:
            continue
        angle = amount / total * 360
        path = _slice_path(layout.cx, layout.cy, radius, inner_radius, current_angle, current_angle + angle)
        slices.append(
            f'<path d="{path}" fill="{html.escape(colors[i % len(colors)])}" stroke="white" stroke-width="2">'
            f"<title>{html.escape(label)}: {format_value(amount)} ({amount / total * 100:.1f}%)</title></path>"
        )
        current_angle += angle

    legend = _render_legend(layout, labels, amounts, total, colors)
    svg = f"{svg_open(width, height, config.get('chart_type', 'pie'))}{''.join(slices)}{legend}</svg>"
    container.append_html(title + svg)
    container.attributes["data-legend"] = layout.placement.value


def _slice_path(
    cx: float, cy: float, radius: float, inner_radius: float, start: float, end: float
) -> str:
    # A full circle cannot be drawn with a single arc
    if end - start >= 359.999:
        end = start + 359.999
    start_rad = math.radians(start)
    end_rad = math.radians(end)
    large_arc = 1 if end - start > 180 else 0

    x1 = cx + radius * math.cos(start_rad)
    y1 = cy + radius * math.sin(start_rad)
    x2 = cx + radius * math.cos(end_rad)
    y2 = cy + radius * math.sin(end_rad)

    if inner_radius > 0:
        ix1 = cx + inner_radius * math.cos(start_rad)
        iy1 = cy + inner_radius * math.sin(start_rad)
        ix2 = cx + inner_radius * math.cos(end_rad)
        iy2 = cy + inner_radius * math.sin(end_rad)
        return (
            f"M {fmt(x1)} {fmt(y1)} "
            f"A {fmt(radius)} {fmt(radius)} 0 {large_arc} 1 {fmt(x2)} {fmt(y2)} "
            f"L {fmt(ix2)} {fmt(iy2)} "
            f"A {fmt(inner_radius)} {fmt(inner_radius)} 0 {large_arc} 0 {fmt(ix1)} {fmt(iy1)} Z"
        )
    return (
        f"M {fmt(cx)} {fmt(cy)} "
        f"L {fmt(x1)} {fmt(y1)} "
        f"A {fmt(radius)} {fmt(radius)} 0 {large_arc} 1 {fmt(x2)} {fmt(y2)} Z"
    )


def _render_legend(layout, labels: list[str], amounts: list[float], total: float, colors: list[str]) -> str:
    items = []
    for i, (label, amount) in enumerate(zip(labels, amounts)):
        dx, dy = layout.item_position(i)
        percentage = max(amount, 0) / total * 100
        items.append(
            f'<g transform="translate({fmt(dx)}, {fmt(dy)})">'
            f'<rect width="18" height="18" rx="3" fill="{html.escape(colors[i % len(colors)])}"/>'
            f'<text x="25" y="13" font-size="12" fill="#374151">{html.escape(label)}</text>'
            f'<text x="25" y="25" font-size="10" fill="#6b7280">{percentage:.1f}%</text>'
            f"</g>"
        )
    css = "vb-legend-right" if layout.placement == LegendPlacement.RIGHT else "vb-legend-bottom"
    return (
        f'<g class="vb-legend {css}" transform="translate({fmt(layout.legend_x)}, {fmt(layout.legend_y)})">'
        f"{''.join(items)}</g>"
    )
