"""Metric card renderer.

Shows a single headline value read from the first data row, with an
optional comparison against a second field.

Visualize attributes:
    value: Field holding the metric (defaults to the first value field).
    label: Caption under the value (defaults to the chart title).
    format: ``currency``, ``percent``, ``integer`` or a Python format spec.
    compareWith: Field holding the comparison value.
    invertTrend: Treat a decrease as good.
    align: ``left``, ``center`` or ``right``.
"""

from __future__ import annotations

import html
import logging
from typing import TYPE_CHECKING, Any

import polars as pl

from vizblocks.base import first_field
from vizblocks.exceptions import MissingRequiredConfig
from vizblocks.renderers.base import default_dimensions, resolve_fields

if TYPE_CHECKING:
    from vizblocks.container import Container

logger = logging.getLogger(__name__)


@default_dimensions(height=150)
def render_metric(container: "Container", data: pl.DataFrame, config: dict[str, Any]) -> None:
    """Render a metric card."""
    container.clear()
    visualize = config.get("visualize") or {}
    field = first_field(visualize.get("value"))
    if field is None:
        _, values = resolve_fields(data, config)
        field = values[0] if values else None
    if field is None or field not in data.columns:
        raise MissingRequiredConfig(
            "Metric chart needs a value field (visualize.value)",
            attribute="value",
            chart_type=config.get("chart_type"),
            block_index=config.get("block_index"),
        )

    value = data.get_column(field)[0] if data.height else None
    label = visualize.get("label") or config.get("title") or field
    number_format = visualize.get("format")
    align = visualize.get("align", "center")
    if align not in ("left", "center", "right"):
        align = "center"

    parts = [
        f'<div class="vb-metric" style="text-align: {align};">',
        f'<div class="vb-metric-value">{html.escape(format_metric(value, number_format))}</div>',
    ]

    comparison = _comparison(data, value, visualize)
    if comparison is not None:
        change, direction, is_good = comparison
        arrow = "&#9650;" if direction == "up" else "&#9660;"
        tone = "good" if is_good else "bad"
        parts.append(
            f'<div class="vb-metric-comparison vb-metric-{tone}">{arrow} {abs(change):.1f}%</div>'
        )

    if visualize.get("showLabel", True):
        parts.append(f'<div class="vb-metric-label">{html.escape(str(label))}</div>')
    parts.append("</div>")
    container.append_html("".join(parts))


def format_metric(value: Any, number_format: str | None = None) -> str:
    """Format a metric value. Missing values render as an em dash."""
    if value is None:
        return "—"
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return str(value)
    if not number_format:
        return f"{value:,}" if isinstance(value, int) else f"{value:,.2f}"
    if number_format == "currency":
        return f"${value:,.2f}"
    if number_format == "percent":
        return f"{value * 100:.1f}%"
    if number_format == "integer":
        return f"{round(value):,}"
    try:
        return format(value, number_format)
    except ValueError:
        logger.warning("Invalid format spec %r for metric", number_format)
        return str(value)


def _comparison(data: pl.DataFrame, value: Any, visualize: dict[str, Any]) -> tuple[float, str, bool] | None:
    compare_field = first_field(visualize.get("compareWith"))
    if not compare_field or compare_field not in data.columns or not data.height:
        return None
    previous = data.get_column(compare_field)[0]
    if not isinstance(value, (int, float)) or not isinstance(previous, (int, float)) or previous == 0:
        return None
    change = (value - previous) / abs(previous) * 100
    if change == 0:
        return None
    direction = "up" if change > 0 else "down"
    is_good = (direction == "up") != bool(visualize.get("invertTrend", False))
    return change, direction, is_good
