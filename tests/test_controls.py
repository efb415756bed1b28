"""Tests for the parameter control surface."""

from vizblocks.container import Container
from vizblocks.controls import render_params


def render(definitions, values):
    container = Container(container_id="params")
    render_params("filters", definitions, values, container)
    return container


class TestRenderParams:
    def test_select(self):
        container = render(
            [{"id": "region", "type": "select", "options": ["US", "EU"], "label": "Region"}],
            {"region": "EU"},
        )
        html = container.inner_html()

        assert 'data-params="filters"' in html
        assert 'data-param="filters.region"' in html
        assert '<option value="EU" selected>EU</option>' in html
        assert '<option value="US">US</option>' in html
        assert "Region" in html
        assert "vb-params-container" in container.class_name

    def test_multiselect(self):
        html = render(
            [{"id": "regions", "type": "multiselect", "options": ["US", "EU", "APAC"]}],
            {"regions": ["US", "APAC"]},
        ).inner_html()

        assert " multiple" in html
        assert html.count(" selected") == 2

    def test_number_keeps_zero(self):
        html = render([{"id": "top_n", "type": "number"}], {"top_n": 0}).inner_html()

        assert 'type="number"' in html
        assert 'value="0"' in html

    def test_date_range(self):
        html = render(
            [{"id": "period", "type": "daterange"}],
            {"period": {"start": "2024-01-01", "end": "2024-03-31"}},
        ).inner_html()

        assert 'type="date"' in html
        assert 'value="2024-01-01"' in html
        assert 'value="2024-03-31"' in html

    def test_values_escaped(self):
        html = render([{"id": "q", "type": "text"}], {"q": '"><script>'}).inner_html()

        assert "<script>" not in html
        assert "&#34;&gt;&lt;script&gt;" in html

    def test_unknown_type_skipped(self, caplog):
        html = render([{"id": "x", "type": "slider"}], {}).inner_html()

        assert 'data-param="filters.x"' not in html
        assert "Unknown parameter type" in caplog.text
