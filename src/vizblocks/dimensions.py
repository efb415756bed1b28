"""Chart dimension estimation.

Predicts the box a chart will occupy before it is drawn so the host can
reserve the space and avoid layout shift. Height is resolved in order:

1. ``visualize.style.height`` (inline or from the referenced named style)
2. the renderer's ``default_dimensions``
3. the per-type default table
4. the global default height

A title adds ``title_height``. Width is the explicit ``visualize.style.width``
or None (responsive). Estimation never raises: on failure it returns
``Dimensions(None, fallback_height)``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping

from vizblocks.base import BlockKind, ChartSpec, Dimensions
from vizblocks.config import EngineSettings

if TYPE_CHECKING:
    from vizblocks.registry import Registry
    from vizblocks.renderers.base import RendererRegistry

logger = logging.getLogger(__name__)


TYPE_DEFAULT_HEIGHTS: dict[str, float] = {
    "metric": 150,
    "pie": 400,
    "doughnut": 400,
}


class DimensionEstimator:
    """Estimate chart dimensions from a chart spec.

    Example:
        >>> estimator = DimensionEstimator(create_default_renderer_registry())
        >>> estimator.estimate({"title": "Sales", "visualize": {"type": "bar"}})
        Dimensions(width=None, height=432.0)
    """

    def __init__(
        self,
        renderers: "RendererRegistry | None" = None,
        settings: EngineSettings | None = None,
        type_defaults: Mapping[str, float] | None = None,
    ) -> None:
        self.renderers = renderers
        self.settings = settings or EngineSettings()
        self.type_defaults = dict(TYPE_DEFAULT_HEIGHTS if type_defaults is None else type_defaults)

    def estimate(
        self,
        spec: ChartSpec | Mapping[str, Any],
        container_width: float | None = None,
        registry: "Registry | None" = None,
    ) -> Dimensions:
        """Estimate the dimensions of a chart.

        Args:
            spec: A resolved ChartSpec or raw chart attributes.
            container_width: Known container width, passed to renderer
                defaults only.
            registry: Document registry used to look up named styles when
                ``spec`` is raw.

        Returns:
            Estimated dimensions; the fallback on any failure.
        """
        try:
            return self._estimate(spec, container_width, registry)
        except Exception as e:
            logger.warning("Failed to estimate dimensions, using fallback: %s", e)
            return Dimensions(width=None, height=float(self.settings.fallback_height))

    def _estimate(
        self,
        spec: ChartSpec | Mapping[str, Any],
        container_width: float | None,
        registry: "Registry | None",
    ) -> Dimensions:
        if isinstance(spec, ChartSpec):
            chart_type = spec.chart_type
            title = spec.title
            style = spec.style
        else:
            if not isinstance(spec, Mapping):
                raise TypeError(f"Chart spec must be a mapping, got {type(spec).__name__}")
            visualize = spec.get("visualize") or {}
            chart_type = visualize.get("type")
            title = spec.get("title") or visualize.get("title")
            style = _style_of(visualize, registry)

        title_height = self.settings.title_height if title else 0
        explicit_width = _number(style.get("width"))
        explicit_height = _number(style.get("height"))

        if explicit_height:
            return Dimensions(width=explicit_width, height=explicit_height + title_height)

        if chart_type and self.renderers is not None:
            try:
                declared = self.renderers.default_dimensions(
                    chart_type,
                    spec if isinstance(spec, ChartSpec) else None,
                    container_width,
                )
            except Exception as e:
                logger.warning("Dimension provider for '%s' failed: %s", chart_type, e)
                declared = None
            if declared is not None and declared.height:
                return Dimensions(
                    width=declared.width or explicit_width,
                    height=float(declared.height) + title_height,
                )

        if chart_type and str(chart_type).lower() in self.type_defaults:
            height = float(self.type_defaults[str(chart_type).lower()])
        else:
            height = float(self.settings.default_height)
        return Dimensions(width=explicit_width, height=height + title_height)


def _style_of(visualize: Mapping[str, Any], registry: "Registry | None") -> Mapping[str, Any]:
    style = visualize.get("style") or {}
    if isinstance(style, str):
        named = registry.find(BlockKind.STYLE, style) if registry is not None else None
        return named or {}
    if not isinstance(style, Mapping):
        raise TypeError(f"visualize.style must be a mapping or style name, got {type(style).__name__}")
    return style


def _number(value: Any) -> float | None:
    """Positive numeric value, or None. Strings like ``"300px"`` are accepted."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().removesuffix("px")
    number = float(value)
    return number if number > 0 else None
