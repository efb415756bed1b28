"""Tests for chart dimension estimation."""

import pytest

from vizblocks.base import ChartSpec, Dimensions
from vizblocks.config import EngineSettings
from vizblocks.dimensions import DimensionEstimator
from vizblocks.registry import Registry
from vizblocks.renderers import create_default_renderer_registry, default_dimensions


@pytest.fixture
def renderers():
    return create_default_renderer_registry()


@pytest.fixture
def estimator(renderers) -> DimensionEstimator:
    return DimensionEstimator(renderers, EngineSettings())


class TestDimensionEstimator:
    def test_explicit_height_wins(self, estimator):
        dims = estimator.estimate({"visualize": {"type": "metric", "style": {"height": 300}}})

        assert dims == Dimensions(width=None, height=300)

    def test_explicit_height_with_units(self, estimator):
        dims = estimator.estimate({"visualize": {"type": "bar", "style": {"height": "250px", "width": 500}}})

        assert dims == Dimensions(width=500, height=250)

    def test_renderer_default(self, estimator):
        assert estimator.estimate({"visualize": {"type": "metric"}}).height == 150

    def test_type_table(self):
        estimator = DimensionEstimator(None, EngineSettings())

        assert estimator.estimate({"visualize": {"type": "metric"}}).height == 150
        assert estimator.estimate({"visualize": {"type": "pie"}}).height == 400

    def test_global_default(self, estimator):
        assert estimator.estimate({"visualize": {"type": "bar"}}).height == 400

    def test_unknown_type_uses_default(self, estimator):
        assert estimator.estimate({"visualize": {"type": "sankey"}}).height == 400

    def test_title_adds_height(self, estimator):
        dims = estimator.estimate({"title": "Sales", "visualize": {"type": "bar"}})

        assert dims.height == 432

    def test_visualize_title(self, estimator):
        dims = estimator.estimate({"visualize": {"type": "metric", "title": "KPI"}})

        assert dims.height == 182

    def test_named_style(self, estimator):
        registry = Registry()
        registry.register("style", "tall", {"height": 600})

        dims = estimator.estimate({"visualize": {"type": "bar", "style": "tall"}}, registry=registry)

        assert dims.height == 600

    def test_chart_spec(self, estimator):
        spec = ChartSpec(block_index=0, chart_type="bar", style={"height": 320}, attributes={"title": "T"})

        assert estimator.estimate(spec).height == 352

    def test_callable_default(self, renderers):
        def tall(container, data, config):
            pass

        tall.default_dimensions = lambda spec, width: {"height": (width or 100) / 2}
        renderers.register("tall", tall)
        estimator = DimensionEstimator(renderers, EngineSettings())

        assert estimator.estimate({"visualize": {"type": "tall"}}, container_width=800).height == 400

    def test_failing_default_is_skipped(self, renderers):
        def broken(container, data, config):
            pass

        def provider(spec, width):
            raise RuntimeError("no size")

        broken.default_dimensions = provider
        renderers.register("broken", broken)
        estimator = DimensionEstimator(renderers, EngineSettings())

        assert estimator.estimate({"visualize": {"type": "broken"}}).height == 400

    def test_decorator(self, renderers):
        @default_dimensions(height=90, width=200)
        def sparkline(container, data, config):
            pass

        renderers.register("sparkline", sparkline)
        estimator = DimensionEstimator(renderers, EngineSettings())

        assert estimator.estimate({"visualize": {"type": "sparkline"}}) == Dimensions(width=200, height=90)

    @pytest.mark.parametrize("spec", [None, "bar", {"visualize": {"style": 5}}, {"visualize": {"style": {"height": "tall"}}}])
    def test_never_raises(self, estimator, spec):
        assert estimator.estimate(spec) == Dimensions(width=None, height=400)
