"""Tests for the 12-column grid."""

import pytest

from vizblocks.config import EngineSettings
from vizblocks.container import Container
from vizblocks.grid import (
    GridCompositor,
    column_fraction,
    css_classes,
    normalize_col_span,
)


@pytest.fixture
def compositor() -> GridCompositor:
    return GridCompositor(EngineSettings())


class TestColSpan:
    @pytest.mark.parametrize("span", range(1, 13))
    def test_fraction_above_breakpoint(self, span):
        assert column_fraction(span, 1024) == span / 12

    @pytest.mark.parametrize("span", range(1, 13))
    def test_full_row_below_breakpoint(self, span):
        assert column_fraction(span, 767) == 1.0

    def test_breakpoint_is_inclusive_for_desktop(self):
        assert column_fraction(6, 768) == 0.5

    @pytest.mark.parametrize("value,expected", [
        (None, 12),
        (13, 12),
        (0, 12),
        (-3, 12),
        ("6", 6),
        ("wide", 12),
        (True, 12),
        (4.0, 4),
    ])
    def test_normalize(self, value, expected):
        assert normalize_col_span(value) == expected

    def test_css_classes(self):
        assert css_classes(12) == "col-span-12"
        assert css_classes(4) == "col-span-12 md:col-span-4"


class TestGridCompositor:
    def test_item_width(self, compositor):
        assert compositor.item_width(6, 960) == 472
        assert compositor.item_width(12, 960) == 960
        assert compositor.item_width(6, 600) == 600

    def test_place_sets_width_and_attributes(self, compositor):
        grid = compositor.create_grid(Container(width=960))

        item = compositor.place(grid, 3, col_span=4)

        assert item.width == pytest.approx(4 / 12 * 976 - 16)
        assert item.attributes["data-block-index"] == "3"
        assert item.attributes["data-col-span"] == "4"
        assert "md:col-span-4" in item.class_name

    def test_items_kept_in_document_order(self, compositor):
        grid = compositor.create_grid(Container(width=960))

        compositor.place(grid, 5)
        compositor.place(grid, 1)
        compositor.place(grid, 3)

        order = [c.attributes["data-block-index"] for c in grid.iter_containers()]
        assert order == ["1", "3", "5"]

    def test_place_replaces_existing_item(self, compositor):
        grid = compositor.create_grid(Container(width=960))
        compositor.place(grid, 1, col_span=6)

        item = compositor.place(grid, 1, col_span=3)

        assert len(grid.children) == 1
        assert compositor.find(grid, 1) is item

    def test_grid_is_child_of_host(self, compositor):
        host = Container(width=960)

        grid = compositor.create_grid(host)

        assert grid.parent is host
        assert "vb-grid" in grid.class_name
