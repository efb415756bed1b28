"""Chart renderer registry and shared drawing helpers.

A renderer is any callable ``(container, data, config)``; ``async def``
renderers are awaited. The contract:

- clear ``container`` before drawing
- raise ``MissingRequiredConfig`` when a required attribute is absent
- touch nothing but ``container``

A renderer may carry a ``default_dimensions`` attribute (a ``Dimensions``,
a ``{"width", "height"}`` mapping, a height number, or a callable
``(spec, container_width)`` returning one of those) used by the
DimensionEstimator.
"""

from __future__ import annotations

import html
import inspect
import logging
from typing import TYPE_CHECKING, Any, Callable, Mapping

import polars as pl

from vizblocks.base import ChartRenderer, Dimensions
from vizblocks.exceptions import MissingRequiredConfig

if TYPE_CHECKING:
    from vizblocks.base import ChartSpec
    from vizblocks.container import Container

logger = logging.getLogger(__name__)


# =============================================================================
# Registry
# =============================================================================


class RendererRegistry:
    """Mapping of chart type names to renderer callables.

    Example:
        >>> registry = RendererRegistry()
        >>> registry.register("table", render_table)
        >>> await registry.invoke("table", container, df, config)
    """

    def __init__(self) -> None:
        self._renderers: dict[str, ChartRenderer] = {}

    def register(self, type_name: str, renderer: ChartRenderer, replace: bool = True) -> None:
        """Register a renderer for a chart type.

        Args:
            type_name: Chart type (``visualize.type``), case-insensitive.
            renderer: Callable accepting ``(container, data, config)``.
            replace: Allow overwriting an existing registration.

        Raises:
            ValueError: If the renderer does not satisfy the call contract,
                or the type is taken and ``replace`` is False.
        """
        if not type_name or not isinstance(type_name, str):
            raise ValueError("Chart type name must be a non-empty string")
        validate_renderer(renderer)
        key = type_name.lower()
        if key in self._renderers and not replace:
            raise ValueError(f"Renderer for chart type '{type_name}' already registered")
        self._renderers[key] = renderer
        logger.debug("Registered renderer: %s", key)

    def unregister(self, type_name: str) -> bool:
        return self._renderers.pop(type_name.lower(), None) is not None

    def get(self, type_name: str) -> ChartRenderer:
        """Get the renderer for a chart type.

        Raises:
            KeyError: If no renderer is registered for the type.
        """
        key = str(type_name).lower()
        if key not in self._renderers:
            available = self.list_types()
            raise KeyError(f"Renderer for chart type '{type_name}' not found. Available: {available}")
        return self._renderers[key]

    def has(self, type_name: str) -> bool:
        return isinstance(type_name, str) and type_name.lower() in self._renderers

    def list_types(self) -> list[str]:
        return sorted(self._renderers.keys())

    def default_dimensions(
        self,
        type_name: str,
        spec: "ChartSpec | None" = None,
        container_width: float | None = None,
    ) -> Dimensions | None:
        """Dimensions a renderer declares for itself, if any."""
        if not self.has(type_name):
            return None
        declared = getattr(self._renderers[type_name.lower()], "default_dimensions", None)
        if callable(declared) and not isinstance(declared, Dimensions):
            declared = declared(spec, container_width)
        return coerce_dimensions(declared)

    async def invoke(
        self,
        type_name: str,
        container: "Container",
        data: pl.DataFrame,
        config: dict[str, Any],
    ) -> None:
        """Call a renderer, awaiting it when it returns an awaitable."""
        result = self.get(type_name)(container, data, config)
        if inspect.isawaitable(result):
            await result

    def __contains__(self, type_name: object) -> bool:
        return isinstance(type_name, str) and self.has(type_name)

    def __len__(self) -> int:
        return len(self._renderers)


def validate_renderer(renderer: Any) -> None:
    """Check that ``renderer`` can be called as ``(container, data, config)``.

    Raises:
        ValueError: If it cannot.
    """
    if not callable(renderer):
        raise ValueError(f"Renderer must be callable, got {type(renderer).__name__}")
    try:
        signature = inspect.signature(renderer)
    except (TypeError, ValueError):
        return
    try:
        signature.bind(None, None, None)
    except TypeError as e:
        name = getattr(renderer, "__name__", type(renderer).__name__)
        raise ValueError(
            f"Renderer {name} must accept (container, data, config): {e}"
        ) from None


def coerce_dimensions(value: Any) -> Dimensions | None:
    """Normalize a declared default to Dimensions."""
    if value is None:
        return None
    if isinstance(value, Dimensions):
        return value
    if isinstance(value, Mapping):
        height = value.get("height")
        if height is None:
            return None
        return Dimensions(width=value.get("width"), height=float(height))
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return Dimensions(width=None, height=float(value))
    return None


def default_dimensions(height: float, width: float | None = None) -> Callable[[Any], Any]:
    """Decorator attaching ``default_dimensions`` to a renderer function."""

    def decorator(func: Any) -> Any:
        func.default_dimensions = Dimensions(width=width, height=float(height))
        return func

    return decorator


# =============================================================================
# Drawing helpers
# =============================================================================


def require_colors(config: Mapping[str, Any]) -> list[str]:
    """Return the resolved palette.

    Raises:
        MissingRequiredConfig: If the palette is absent or empty.
    """
    colors = config.get("colors")
    if not colors or not isinstance(colors, (list, tuple)):
        raise MissingRequiredConfig(
            f"{config.get('chart_type', 'Chart')} config missing colors array. "
            "Ensure style resolution includes palette colors.",
            attribute="colors",
            chart_type=config.get("chart_type"),
            block_index=config.get("block_index"),
        )
    return [str(c) for c in colors]


def resolve_fields(data: pl.DataFrame, config: Mapping[str, Any]) -> tuple[str | None, list[str]]:
    """Category field and value fields, inferred from the data when unmapped.

    The category is the first non-numeric column; values are the numeric
    columns other than the category.
    """
    category = config.get("category_field")
    values = list(config.get("value_fields") or [])
    if category is None:
        category = next((c for c in data.columns if not data.schema[c].is_numeric()), None)
    if not values:
        values = [c for c in data.columns if data.schema[c].is_numeric() and c != category]
    return category, values


def chart_size(container: "Container", config: Mapping[str, Any]) -> tuple[float, float]:
    """Width and height available for drawing."""
    width = container.width or config.get("width") or config.get("default_width") or 600
    height = config.get("height") or 400
    return float(width), float(height)


def fmt(value: float) -> str:
    """Format a coordinate for SVG output."""
    return f"{value:.2f}".rstrip("0").rstrip(".")


def format_value(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:,.2f}".rstrip("0").rstrip(".")
    if isinstance(value, int) and not isinstance(value, bool):
        return f"{value:,}"
    return str(value)


def render_title(title: str) -> str:
    if not title:
        return ""
    return f'<h4 class="vb-chart-title">{html.escape(title)}</h4>'


def render_empty(width: float, height: float) -> str:
    """SVG placeholder for a chart without data."""
    return (
        f'<svg width="{fmt(width)}" height="{fmt(height)}" class="vb-svg-chart">'
        f'<text x="{fmt(width / 2)}" y="{fmt(height / 2)}" text-anchor="middle" '
        f'class="vb-chart-empty">No data available</text></svg>'
    )


def svg_open(width: float, height: float, chart_type: str) -> str:
    return (
        f'<svg width="100%" height="{fmt(height)}" viewBox="0 0 {fmt(width)} {fmt(height)}" '
        f'class="vb-svg-chart vb-{html.escape(chart_type)}" style="max-width: 100%;">'
    )
