"""12-column responsive grid layout.

Each chart's ``layout.colSpan`` (1-12, default 12) selects the fraction of
the row it occupies. Below the mobile breakpoint every item spans the full
row. Grid items are inserted into the grid *before* their chart renders so
a renderer can read its final width from its container.
"""

from __future__ import annotations

import logging
from typing import Any

from vizblocks.config import EngineSettings
from vizblocks.container import Container

logger = logging.getLogger(__name__)


GRID_COLUMNS = 12
DEFAULT_COL_SPAN = 12

GRID_CLASS = "vb-grid"
ITEM_CLASS = "vb-grid-item"


def normalize_col_span(value: Any) -> int:
    """Coerce a ``colSpan`` attribute to an integer in 1..12.

    Values above 12 clamp to 12. Missing, non-numeric and non-positive
    values fall back to the full row.
    """
    if value is None or isinstance(value, bool):
        return DEFAULT_COL_SPAN
    try:
        span = int(float(value))
    except (TypeError, ValueError):
        logger.warning("Invalid colSpan %r, using %d", value, DEFAULT_COL_SPAN)
        return DEFAULT_COL_SPAN
    if span < 1:
        logger.warning("Invalid colSpan %r, using %d", value, DEFAULT_COL_SPAN)
        return DEFAULT_COL_SPAN
    return min(span, GRID_COLUMNS)


def column_fraction(col_span: Any, viewport_width: float, mobile_breakpoint: float = 768) -> float:
    """Fraction of the row a block occupies at a given viewport width."""
    if viewport_width < mobile_breakpoint:
        return 1.0
    return normalize_col_span(col_span) / GRID_COLUMNS


def css_classes(col_span: Any) -> str:
    """Responsive column classes: full row on mobile, ``colSpan`` from ``md`` up."""
    span = normalize_col_span(col_span)
    if span == GRID_COLUMNS:
        return "col-span-12"
    return f"col-span-12 md:col-span-{span}"


class GridCompositor:
    """Places grid items into a grid container.

    Example:
        >>> compositor = GridCompositor()
        >>> grid = compositor.create_grid(Container(width=960))
        >>> item = compositor.place(grid, block_index=1, col_span=6)
        >>> item.width
        472.0
    """

    def __init__(self, settings: EngineSettings | None = None) -> None:
        self.settings = settings or EngineSettings()

    def create_grid(self, host: Container) -> Container:
        """Create the grid container inside ``host``."""
        grid = Container(width=host.width, class_name=GRID_CLASS)
        host.append(grid)
        return grid

    def item_width(self, col_span: Any, viewport_width: float) -> float:
        """Width of an item spanning ``col_span`` columns, gutters excluded."""
        fraction = column_fraction(col_span, viewport_width, self.settings.mobile_breakpoint)
        if fraction >= 1.0:
            return float(viewport_width)
        gutter = self.settings.grid_gutter
        return fraction * (viewport_width + gutter) - gutter

    def place(
        self,
        grid: Container,
        block_index: int,
        col_span: Any = DEFAULT_COL_SPAN,
        viewport_width: float | None = None,
    ) -> Container:
        """Insert the grid item for a block and return it.

        Items are kept in document order regardless of the order in which
        they are placed. An existing item for the same block is replaced.
        """
        span = normalize_col_span(col_span)
        viewport = viewport_width or grid.width or self.settings.default_container_width
        item = Container(
            width=self.item_width(span, viewport),
            class_name=f"{ITEM_CLASS} {css_classes(span)}",
            container_id=f"{grid.container_id}-block-{block_index}",
        )
        item.attributes["data-block-index"] = str(block_index)
        item.attributes["data-col-span"] = str(span)

        position = len(grid.children)
        for i, child in enumerate(grid.children):
            if not isinstance(child, Container):
                continue
            index = _block_index(child)
            if index == block_index:
                grid.remove(child)
                position = i
                break
            if index is not None and index > block_index:
                position = i
                break
        grid.insert(position, item)
        return item

    def find(self, grid: Container, block_index: int) -> Container | None:
        """The grid item of a block, if placed."""
        for child in grid.iter_containers():
            if _block_index(child) == block_index:
                return child
        return None


def _block_index(item: Container) -> int | None:
    value = item.attributes.get("data-block-index")
    return int(value) if value is not None else None
