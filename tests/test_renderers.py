"""Tests for the built-in chart renderers and the renderer registry."""

import polars as pl
import pytest

from vizblocks.base import Dimensions
from vizblocks.container import Container
from vizblocks.exceptions import MissingRequiredConfig
from vizblocks.renderers import (
    BUILTIN_RENDERERS,
    RendererRegistry,
    create_default_renderer_registry,
    render_bar,
    render_line,
    render_metric,
    render_pie,
    render_scatter,
    render_table,
)
from vizblocks.renderers.base import chart_size, resolve_fields
from vizblocks.renderers.metric import format_metric

COLORS = ["#111111", "#222222", "#333333", "#444444"]


def make_config(chart_type: str, **overrides) -> dict:
    config = {
        "chart_type": chart_type,
        "block_index": 0,
        "title": "",
        "colors": COLORS,
        "visualize": {"type": chart_type},
        "style": {},
        "theme": {},
        "category_field": None,
        "value_fields": [],
        "width": None,
        "height": 400,
        "default_width": 600,
    }
    config.update(overrides)
    return config


@pytest.fixture
def regions() -> pl.DataFrame:
    return pl.DataFrame({"region": ["US", "EU", "APAC", "LATAM"], "revenue": [40, 30, 20, 10]})


class TestRendererRegistry:
    def test_builtin_types(self):
        registry = create_default_renderer_registry()

        assert registry.list_types() == sorted(BUILTIN_RENDERERS)
        assert "doughnut" in registry
        assert len(registry) == 8

    def test_invalid_signature(self):
        with pytest.raises(ValueError, match="container, data, config"):
            RendererRegistry().register("bad", lambda container: None)

    def test_no_replace(self):
        registry = RendererRegistry()
        registry.register("bar", render_bar)

        with pytest.raises(ValueError):
            registry.register("bar", render_line, replace=False)

    def test_get_unknown(self):
        with pytest.raises(KeyError):
            RendererRegistry().get("sankey")

    def test_default_dimensions(self):
        registry = create_default_renderer_registry()

        assert registry.default_dimensions("metric") == Dimensions(width=None, height=150)
        assert registry.default_dimensions("bar") is None
        assert registry.default_dimensions("unknown") is None

    @pytest.mark.asyncio
    async def test_invoke_async_renderer(self, regions):
        async def async_renderer(container, data, config):
            container.append_html(f"<p>{data.height}</p>")

        registry = RendererRegistry()
        registry.register("async", async_renderer)
        container = Container()

        await registry.invoke("async", container, regions, {})

        assert container.inner_html() == "<p>4</p>"


class TestHelpers:
    def test_resolve_fields_inferred(self, regions):
        assert resolve_fields(regions, {}) == ("region", ["revenue"])

    def test_resolve_fields_mapped(self, regions):
        config = {"category_field": "region", "value_fields": ["revenue"]}

        assert resolve_fields(regions, config) == ("region", ["revenue"])

    def test_chart_size_prefers_container_width(self):
        assert chart_size(Container(width=472), {"height": 300}) == (472.0, 300.0)
        assert chart_size(Container(), {}) == (600.0, 400.0)


class TestPie:
    def test_legend_beside(self, regions):
        container = Container(width=600)

        render_pie(container, regions, make_config("pie"))

        html = container.inner_html()
        assert html.count("<path") == 4
        assert "vb-legend-right" in html
        assert container.attributes["data-legend"] == "right"

    def test_legend_below_on_narrow_container(self, regions):
        container = Container(width=300)

        render_pie(container, regions, make_config("pie"))

        assert container.attributes["data-legend"] == "bottom"

    def test_doughnut(self, regions):
        container = Container(width=600)

        render_pie(container, regions, make_config("doughnut"))

        html = container.inner_html()
        assert "vb-doughnut" in html
        assert html.count(" A ") == 8

    def test_missing_colors(self, regions):
        with pytest.raises(MissingRequiredConfig) as exc_info:
            render_pie(Container(width=600), regions, make_config("pie", colors=[]))

        assert exc_info.value.attribute == "colors"

    def test_zero_total_renders_empty_state(self):
        container = Container(width=600)
        data = pl.DataFrame({"region": ["US"], "revenue": [0]})

        render_pie(container, data, make_config("pie"))

        assert "No data available" in container.inner_html()

    def test_clears_container(self, regions):
        container = Container(width=600)
        container.append_html("<p>stale</p>")

        render_pie(container, regions, make_config("pie"))

        assert "stale" not in container.inner_html()

    def test_labels_escaped(self):
        container = Container(width=600)
        data = pl.DataFrame({"name": ["<b>"], "value": [1]})

        render_pie(container, data, make_config("pie"))

        assert "<b>" not in container.inner_html()


class TestCartesian:
    def test_bar_one_rect_per_row(self, regions):
        container = Container(width=600)

        render_bar(container, regions, make_config("bar", title="Revenue"))

        html = container.inner_html()
        assert html.count("<rect") == 4
        assert "vb-chart-title" in html

    def test_grouped_bars_with_legend(self):
        data = pl.DataFrame({"month": ["Jan", "Feb"], "us": [1, 2], "eu": [3, 4]})
        container = Container(width=600)

        render_bar(container, data, make_config("bar"))

        html = container.inner_html()
        assert "vb-series-legend" in html
        # 4 bars plus 2 legend swatches
        assert html.count("<rect") == 6

    def test_single_numeric_column(self):
        container = Container(width=600)

        render_bar(container, pl.DataFrame([{"x": 1}]), make_config("bar"))

        assert container.inner_html().count("<rect") == 1

    def test_line(self, regions):
        container = Container(width=600)

        render_line(container, regions, make_config("line"))

        html = container.inner_html()
        assert html.count("<circle") == 4
        assert "vb-line" in html

    def test_no_value_field(self):
        data = pl.DataFrame({"month": ["Jan"]})

        with pytest.raises(MissingRequiredConfig, match="numeric value field"):
            render_bar(Container(width=600), data, make_config("bar"))

    def test_unknown_value_field(self, regions):
        with pytest.raises(MissingRequiredConfig, match="not found"):
            render_bar(Container(width=600), regions, make_config("bar", value_fields=["profit"]))

    def test_empty_data(self):
        container = Container(width=600)

        render_bar(container, pl.DataFrame(), make_config("bar"))

        assert "No data available" in container.inner_html()


class TestMetric:
    def test_value_and_label(self):
        container = Container()
        data = pl.DataFrame({"revenue": [1234.5]})
        config = make_config("metric", visualize={"type": "metric", "value": "revenue", "format": "currency", "label": "Revenue"})

        render_metric(container, data, config)

        html = container.inner_html()
        assert "$1,234.50" in html
        assert "Revenue" in html

    def test_comparison(self):
        container = Container()
        data = pl.DataFrame({"current": [120], "previous": [100]})
        config = make_config("metric", visualize={"type": "metric", "value": "current", "compareWith": "previous"})

        render_metric(container, data, config)

        html = container.inner_html()
        assert "vb-metric-good" in html
        assert "20.0%" in html

    def test_inverted_trend(self):
        container = Container()
        data = pl.DataFrame({"current": [120], "previous": [100]})
        visualize = {"type": "metric", "value": "current", "compareWith": "previous", "invertTrend": True}

        render_metric(container, data, make_config("metric", visualize=visualize))

        assert "vb-metric-bad" in container.inner_html()

    def test_missing_value_field(self):
        config = make_config("metric", visualize={"type": "metric", "value": "profit"})

        with pytest.raises(MissingRequiredConfig):
            render_metric(Container(), pl.DataFrame({"revenue": [1]}), config)

    @pytest.mark.parametrize("value,number_format,expected", [
        (None, None, "—"),
        (1500, None, "1,500"),
        (0.256, "percent", "25.6%"),
        (12.7, "integer", "13"),
        (3.14159, ".2f", "3.14"),
        ("n/a", None, "n/a"),
    ])
    def test_format_metric(self, value, number_format, expected):
        assert format_metric(value, number_format) == expected


class TestScatter:
    @pytest.fixture
    def points(self) -> pl.DataFrame:
        return pl.DataFrame({
            "spend": [1.0, 2.0, 3.0],
            "revenue": [4.0, 5.0, 6.0],
            "orders": [1, 4, 1],
            "channel": ["web", "store", "web"],
        })

    def test_one_circle_per_point(self, points):
        container = Container(width=600)

        render_scatter(container, points, make_config("scatter", category_field="spend", value_fields=["revenue"]))

        html = container.inner_html()
        assert html.count("<circle") == 3
        assert 'r="5"' in html
        assert "spend: 1 / revenue: 4" in html

    def test_color_groups_with_legend(self, points):
        container = Container(width=600)
        visualize = {"type": "scatter", "marks": {"color": "channel"}}

        render_scatter(container, points, make_config("scatter", visualize=visualize))

        html = container.inner_html()
        assert "vb-scatter-legend" in html
        # 3 points plus 2 legend markers
        assert html.count("<circle") == 5
        assert COLORS[1] in html

    def test_bubble_sizes(self, points):
        container = Container(width=600)
        visualize = {"type": "scatter", "marks": {"size": "orders"}}
        config = make_config("scatter", visualize=visualize, category_field="spend", value_fields=["revenue"])

        render_scatter(container, points, config)

        html = container.inner_html()
        assert 'r="20"' in html
        assert 'r="12.5"' in html

    def test_axis_labels(self, points):
        container = Container(width=600)
        visualize = {"type": "scatter", "axes": {"x": {"label": "Ad spend"}, "left": {"label": "Revenue"}}}

        render_scatter(container, points, make_config("scatter", visualize=visualize))

        html = container.inner_html()
        assert "Ad spend" in html
        assert "rotate(-90" in html

    def test_missing_colors(self, points):
        with pytest.raises(MissingRequiredConfig):
            render_scatter(Container(width=600), points, make_config("scatter", colors=None))

    def test_unknown_field(self, points):
        with pytest.raises(MissingRequiredConfig, match="not found"):
            render_scatter(Container(width=600), points, make_config("scatter", value_fields=["profit"]))

    def test_needs_numeric_fields(self):
        with pytest.raises(MissingRequiredConfig, match="numeric x and y"):
            render_scatter(Container(width=600), pl.DataFrame({"name": ["a"]}), make_config("scatter"))

    def test_empty_data(self):
        container = Container(width=600)

        render_scatter(container, pl.DataFrame(), make_config("scatter"))

        assert "No data available" in container.inner_html()


class TestTable:
    def test_all_columns(self, regions):
        container = Container()

        render_table(container, regions, make_config("table"))

        html = container.inner_html()
        assert "<th>region</th>" in html
        assert '<th class="vb-num">revenue</th>' in html
        assert html.count("<tr>") == 5
        assert '<td class="vb-num">40</td>' in html

    def test_selected_columns(self, regions):
        container = Container()
        visualize = {"type": "table", "columns": [{"field": "revenue", "label": "Revenue ($)", "format": "currency"}]}

        render_table(container, regions, make_config("table", visualize=visualize))

        html = container.inner_html()
        assert "Revenue ($)" in html
        assert "$40.00" in html
        assert "region" not in html

    def test_max_rows(self, regions):
        container = Container()

        render_table(container, regions, make_config("table", visualize={"type": "table", "maxRows": 2}))

        html = container.inner_html()
        assert html.count("<tr>") == 3
        assert "Showing 2 of 4 rows" in html

    def test_unknown_column(self, regions):
        visualize = {"type": "table", "columns": ["profit"]}

        with pytest.raises(MissingRequiredConfig, match="profit"):
            render_table(Container(), regions, make_config("table", visualize=visualize))

    def test_values_escaped(self):
        container = Container()

        render_table(container, pl.DataFrame({"name": ["<b>"]}), make_config("table"))

        assert "&lt;b&gt;" in container.inner_html()

    def test_no_palette_required(self, regions):
        container = Container()

        render_table(container, regions, make_config("table", colors=None))

        assert "vb-table" in container.inner_html()
