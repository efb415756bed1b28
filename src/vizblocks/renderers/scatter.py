"""Scatter and bubble renderer.

``visualize.columns`` names the x field and ``visualize.rows`` the y field.
Optional ``marks.size`` turns points into bubbles scaled by area and
``marks.color`` groups points by category with a legend below the plot.
"""

from __future__ import annotations

import html
import math
from typing import TYPE_CHECKING, Any

import polars as pl

from vizblocks.base import first_field
from vizblocks.exceptions import MissingRequiredConfig
from vizblocks.renderers.base import (
    chart_size,
    fmt,
    format_value,
    render_empty,
    render_title,
    require_colors,
    svg_open,
)

if TYPE_CHECKING:
    from vizblocks.container import Container


MARGIN = {"top": 20, "right": 30, "left": 70}
TICK_SPACE = 20
AXIS_LABEL_SPACE = 25
LEGEND_SPACE = 40
LEGEND_PADDING = 10
LEGEND_ITEM_WIDTH = 100
MIN_LEGEND_ITEM_WIDTH = 60
DEFAULT_RADIUS = 5
RADIUS_RANGE = (5, 20)
TICK_COUNT = 5


def render_scatter(container: "Container", data: pl.DataFrame, config: dict[str, Any]) -> None:
    """Render a scatter plot."""
    container.clear()
    colors = require_colors(config)
    width, height = chart_size(container, config)
    title = render_title(config.get("title", ""))
    visualize = config.get("visualize") or {}
    marks = visualize.get("marks") or {}
    axes = visualize.get("axes") or {}

    if data.height == 0:
        container.append_html(title + render_empty(width, height))
        return

    x_field, y_field = _xy_fields(data, config)
    size_field = first_field(marks.get("size"))
    color_field = first_field(marks.get("color"))
    for attribute, field in (("columns", x_field), ("rows", y_field), ("marks.size", size_field)):
        if field is not None and field not in data.columns:
            raise MissingRequiredConfig(
                f"Scatter field '{field}' not found in data. Available: {data.columns}",
                attribute=attribute,
                chart_type=config.get("chart_type"),
                block_index=config.get("block_index"),
            )
    if color_field is not None and color_field not in data.columns:
        color_field = None

    x_label = (axes.get("x") or {}).get("label", "")
    y_label = (axes.get("left") or {}).get("label", "")
    margin_bottom = (
        TICK_SPACE
        + (AXIS_LABEL_SPACE if x_label else 0)
        + (LEGEND_PADDING + LEGEND_SPACE if color_field else 0)
    )
    plot_width = max(1.0, width - MARGIN["left"] - MARGIN["right"])
    plot_height = max(1.0, height - MARGIN["top"] - margin_bottom)

    xs = _numbers(data, x_field)
    ys = _numbers(data, y_field)
    x_low, x_high = _domain(xs)
    y_low, y_high = _domain(ys)

    def sx(value: float) -> float:
        return MARGIN["left"] + (value - x_low) / (x_high - x_low) * plot_width

    def sy(value: float) -> float:
        return MARGIN["top"] + plot_height - (value - y_low) / (y_high - y_low) * plot_height

    radius = _radius_scale(_numbers(data, size_field) if size_field else None)
    categories = _categories(data, color_field)

    parts = [svg_open(width, height, config.get("chart_type", "scatter"))]
    parts.append(_draw_grid(sx, sy, (x_low, x_high), (y_low, y_high), plot_width, plot_height))
    if x_label:
        parts.append(
            f'<text x="{fmt(MARGIN["left"] + plot_width / 2)}" '
            f'y="{fmt(MARGIN["top"] + plot_height + TICK_SPACE + 20)}" text-anchor="middle" '
            f'class="vb-axis-title">{html.escape(str(x_label))}</text>'
        )
    if y_label:
        cx, cy = 15, MARGIN["top"] + plot_height / 2
        parts.append(
            f'<text x="{fmt(cx)}" y="{fmt(cy)}" text-anchor="middle" class="vb-axis-title" '
            f'transform="rotate(-90 {fmt(cx)} {fmt(cy)})">{html.escape(str(y_label))}</text>'
        )

    groups = data.get_column(color_field).to_list() if color_field else [None] * data.height
    sizes = _numbers(data, size_field) if size_field else [None] * data.height
    for x, y, size, group in zip(xs, ys, sizes, groups):
        if x is None or y is None:
            continue
        color = colors[categories.index(group) % len(colors)] if color_field else colors[0]
        tip = f"{x_field}: {format_value(x)} / {y_field}: {format_value(y)}"
        if size_field:
            tip += f" / {size_field}: {format_value(size)}"
        if color_field:
            tip += f" / {color_field}: {group}"
        parts.append(
            f'<circle cx="{fmt(sx(x))}" cy="{fmt(sy(y))}" r="{fmt(radius(size))}" '
            f'fill="{html.escape(color)}" stroke="white" stroke-width="1.5" opacity="0.8">'
            f"<title>{html.escape(tip)}</title></circle>"
        )

    if color_field:
        legend_y = MARGIN["top"] + plot_height + TICK_SPACE + (AXIS_LABEL_SPACE if x_label else 0) + LEGEND_PADDING
        parts.append(_draw_legend(categories, colors, plot_width, legend_y))
    parts.append("</svg>")
    container.append_html(title + "".join(parts))


def _xy_fields(data: pl.DataFrame, config: dict[str, Any]) -> tuple[str, str]:
    """Mapped x/y fields, else the first two numeric columns."""
    numeric = [c for c in data.columns if data.schema[c].is_numeric()]
    x_field = config.get("category_field")
    value_fields = config.get("value_fields") or []
    y_field = value_fields[0] if value_fields else None
    if x_field is None:
        x_field = next((c for c in numeric if c != y_field), None)
    if y_field is None:
        y_field = next((c for c in numeric if c != x_field), None)
    if x_field is None or y_field is None:
        raise MissingRequiredConfig(
            "Scatter chart needs numeric x and y fields (visualize.columns, visualize.rows)",
            attribute="rows",
            chart_type=config.get("chart_type"),
            block_index=config.get("block_index"),
        )
    return x_field, y_field


def _numbers(data: pl.DataFrame, field: str) -> list[float | None]:
    return data.get_column(field).cast(pl.Float64, strict=False).to_list()


def _domain(values: list[float | None]) -> tuple[float, float]:
    """Axis domain from zero (or the minimum, if negative) to the maximum."""
    present = [v for v in values if v is not None]
    if not present:
        return 0.0, 1.0
    low = min(0.0, min(present))
    high = max(present)
    if high <= low:
        high = low + 1
    return low, high


def _radius_scale(sizes: list[float | None] | None):
    """Square-root scale so bubble area tracks the size value."""
    if not sizes:
        return lambda size: DEFAULT_RADIUS
    largest = max((s for s in sizes if s is not None and s > 0), default=0.0)
    if largest == 0:
        return lambda size: RADIUS_RANGE[0]
    low, high = RADIUS_RANGE

    def scale(size: float | None) -> float:
        if size is None or size <= 0:
            return low
        return low + (high - low) * math.sqrt(size / largest)

    return scale


def _categories(data: pl.DataFrame, field: str | None) -> list[Any]:
    if field is None:
        return []
    seen: list[Any] = []
    for value in data.get_column(field).to_list():
        if value not in seen:
            seen.append(value)
    return seen


def _draw_grid(sx, sy, x_domain, y_domain, plot_width: float, plot_height: float) -> str:
    parts = []
    bottom = MARGIN["top"] + plot_height
    for i in range(TICK_COUNT + 1):
        x_value = x_domain[0] + (x_domain[1] - x_domain[0]) * i / TICK_COUNT
        y_value = y_domain[0] + (y_domain[1] - y_domain[0]) * i / TICK_COUNT
        x, y = sx(x_value), sy(y_value)
        parts.append(
            f'<line x1="{fmt(x)}" x2="{fmt(x)}" y1="{MARGIN["top"]}" y2="{fmt(bottom)}" '
            f'class="vb-grid-line" stroke="#E5E7EB"/>'
            f'<text x="{fmt(x)}" y="{fmt(bottom + 14)}" text-anchor="middle" '
            f'class="vb-axis-label">{format_value(round(x_value, 2))}</text>'
            f'<line x1="{MARGIN["left"]}" x2="{fmt(MARGIN["left"] + plot_width)}" '
            f'y1="{fmt(y)}" y2="{fmt(y)}" class="vb-grid-line" stroke="#E5E7EB"/>'
            f'<text x="{MARGIN["left"] - 8}" y="{fmt(y)}" text-anchor="end" '
            f'dominant-baseline="middle" class="vb-axis-label">{format_value(round(y_value, 2))}</text>'
        )
    return "".join(parts)


def _draw_legend(categories: list[Any], colors: list[str], plot_width: float, y: float) -> str:
    item_width = LEGEND_ITEM_WIDTH
    available = plot_width - 20
    if len(categories) * item_width > available:
        item_width = max(MIN_LEGEND_ITEM_WIDTH, available / len(categories))
    start = MARGIN["left"] + max(0.0, (plot_width - len(categories) * item_width) / 2)

    items = []
    for i, category in enumerate(categories):
        label = str(category)
        if len(label) > 15:
            label = label[:12] + "..."
        items.append(
            f'<g transform="translate({fmt(start + i * item_width)}, {fmt(y)})">'
            f'<circle cx="7" cy="7" r="5" fill="{html.escape(colors[i % len(colors)])}"/>'
            f'<text x="18" y="11" font-size="11" fill="#374151">{html.escape(label)}</text></g>'
        )
    return f'<g class="vb-scatter-legend">{"".join(items)}</g>'
