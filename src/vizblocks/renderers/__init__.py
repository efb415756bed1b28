"""Chart renderers for vizblocks.

Built-in chart types:
- bar, line, area: SVG cartesian charts
- pie, doughnut: SVG pie charts with an adaptive legend
- scatter: SVG scatter and bubble plots
- metric: headline value card
- table: HTML data table

Example:
    >>> from vizblocks.renderers import create_default_renderer_registry
    >>> registry = create_default_renderer_registry()
    >>> registry.list_types()
    ['area', 'bar', 'doughnut', 'line', 'metric', 'pie', 'scatter', 'table']
"""

from vizblocks.renderers.base import (
    RendererRegistry,
    coerce_dimensions,
    default_dimensions,
    require_colors,
    validate_renderer,
)
from vizblocks.renderers.cartesian import render_area, render_bar, render_line
from vizblocks.renderers.layout import LegendLayout, compute_legend_layout
from vizblocks.renderers.metric import render_metric
from vizblocks.renderers.pie import render_pie
from vizblocks.renderers.scatter import render_scatter
from vizblocks.renderers.table import render_table


BUILTIN_RENDERERS = {
    "bar": render_bar,
    "line": render_line,
    "area": render_area,
    "pie": render_pie,
    "doughnut": render_pie,
    "scatter": render_scatter,
    "metric": render_metric,
    "table": render_table,
}


def create_default_renderer_registry() -> RendererRegistry:
    """Create a registry holding the built-in renderers."""
    registry = RendererRegistry()
    for type_name, renderer in BUILTIN_RENDERERS.items():
        registry.register(type_name, renderer)
    return registry


__all__ = [
    "BUILTIN_RENDERERS",
    "LegendLayout",
    "RendererRegistry",
    "coerce_dimensions",
    "compute_legend_layout",
    "create_default_renderer_registry",
    "default_dimensions",
    "render_area",
    "render_bar",
    "render_line",
    "render_metric",
    "render_pie",
    "render_scatter",
    "render_table",
    "require_colors",
    "validate_renderer",
]
