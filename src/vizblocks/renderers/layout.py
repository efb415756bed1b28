"""Adaptive legend layout.

Charts with an auxiliary legend trade primary-shape size against legend
space. The legend goes beside the shape when the box is wide enough and the
shape stays readable; otherwise it is stacked below in rows. The shape is
always centered horizontally.

``compute_legend_layout`` is a pure function of ``(width, height, items)``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from vizblocks.base import LegendPlacement


# =============================================================================
# Constants
# =============================================================================

LEGEND_WIDTH = 150
LEGEND_GAP = 20
MIN_SIDE_WIDTH = 400
MIN_PRIMARY_SIZE = 180
VERTICAL_MARGIN = 80

LEGEND_ITEM_WIDTH = 120
LEGEND_ROW_HEIGHT = 30
LEGEND_MARGIN = 40
LEGEND_BOTTOM_PADDING = 10

SIDE_LEGEND_TOP = 20
SIDE_LEGEND_ROW_HEIGHT = 25

SHAPE_PADDING_HORIZONTAL = 40
SHAPE_PADDING_VERTICAL = 20


# =============================================================================
# Layout
# =============================================================================


@dataclass(frozen=True)
class LegendLayout:
    """Geometry of a primary shape and its legend.

    Attributes:
        placement: Where the legend goes.
        size: Diameter (or side length) of the primary shape.
        cx: Horizontal center of the primary shape.
        cy: Vertical center of the primary shape.
        legend_x: Left edge of the legend block.
        legend_y: Top edge of the legend block.
        items_per_row: Legend items per row (1 column when beside).
        rows: Number of legend rows.
        legend_height: Height of the legend block.
        row_height: Vertical distance between legend rows.
    """

    placement: LegendPlacement
    size: float
    cx: float
    cy: float
    legend_x: float
    legend_y: float
    items_per_row: int
    rows: int
    legend_height: float
    row_height: float

    @property
    def radius(self) -> float:
        return self.size / 2

    def item_position(self, index: int) -> tuple[float, float]:
        """Offset of legend item ``index`` relative to the legend origin."""
        if self.placement == LegendPlacement.RIGHT:
            return 0.0, index * self.row_height
        col = index % self.items_per_row
        row = index // self.items_per_row
        return float(col * LEGEND_ITEM_WIDTH), float(row * self.row_height)


def side_by_side_size(width: float, height: float) -> float:
    """Largest primary size when the legend sits beside the shape."""
    max_right_edge = width - LEGEND_WIDTH - LEGEND_GAP
    by_width = (max_right_edge - width / 2) * 2
    by_height = height - VERTICAL_MARGIN
    return min(by_width, by_height)


def items_per_row(width: float) -> int:
    return max(1, math.floor((width - LEGEND_MARGIN) / LEGEND_ITEM_WIDTH))


def compute_legend_layout(width: float, height: float, item_count: int) -> LegendLayout:
    """Choose legend placement and primary-shape geometry.

    Args:
        width: Box width.
        height: Box height.
        item_count: Number of legend items.

    Returns:
        The computed layout.

    Example:
        >>> layout = compute_legend_layout(600, 400, 4)
        >>> layout.placement, layout.size
        (<LegendPlacement.RIGHT: 'right'>, 260.0)
    """
    item_count = max(0, int(item_count))
    side_size = side_by_side_size(width, height)

    if width >= MIN_SIDE_WIDTH and side_size >= MIN_PRIMARY_SIZE:
        rows = max(1, item_count)
        return LegendLayout(
            placement=LegendPlacement.RIGHT,
            size=float(side_size),
            cx=width / 2,
            cy=height / 2,
            legend_x=float(width - LEGEND_WIDTH),
            legend_y=float(SIDE_LEGEND_TOP),
            items_per_row=1,
            rows=rows,
            legend_height=float(rows * SIDE_LEGEND_ROW_HEIGHT),
            row_height=float(SIDE_LEGEND_ROW_HEIGHT),
        )

    per_row = items_per_row(width)
    rows = math.ceil(item_count / per_row)
    legend_height = rows * LEGEND_ROW_HEIGHT
    available_height = height - legend_height - LEGEND_BOTTOM_PADDING
    size = max(
        0.0,
        min(width - 2 * SHAPE_PADDING_HORIZONTAL, available_height - 2 * SHAPE_PADDING_VERTICAL),
    )
    legend_width = min(item_count, per_row) * LEGEND_ITEM_WIDTH

    return LegendLayout(
        placement=LegendPlacement.BOTTOM,
        size=float(size),
        cx=width / 2,
        cy=available_height / 2,
        legend_x=(width - legend_width) / 2,
        legend_y=float(height - legend_height - LEGEND_BOTTOM_PADDING),
        items_per_row=per_row,
        rows=rows,
        legend_height=float(legend_height),
        row_height=float(LEGEND_ROW_HEIGHT),
    )
