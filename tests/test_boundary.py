"""Tests for the per-block error boundary."""

import pytest

from vizblocks.base import BlockPhase
from vizblocks.boundary import ErrorBoundary, error_html
from vizblocks.container import Container
from vizblocks.events import EventType
from vizblocks.exceptions import MissingRequiredConfig, RenderError, SpecError


@pytest.fixture
def boundary(events) -> ErrorBoundary:
    return ErrorBoundary(events)


class TestErrorBoundary:
    def test_success(self, boundary):
        with boundary.capture(0) as scope:
            pass

        assert not scope.failed
        assert boundary.errors == []

    def test_known_error_kept(self, boundary):
        with boundary.capture(2) as scope:
            raise MissingRequiredConfig("no colors", attribute="colors", chart_type="pie")

        assert scope.failed
        assert scope.descriptor.kind == "MissingRequiredConfig"
        assert scope.descriptor.block_index == 2

    def test_unexpected_error_wrapped_in_render_phase(self, boundary):
        with boundary.capture(1, chart_type="bar") as scope:
            raise ZeroDivisionError("division by zero")

        assert isinstance(scope.error, RenderError)
        assert scope.error.chart_type == "bar"
        assert isinstance(scope.error.__cause__, ZeroDivisionError)
        assert "ZeroDivisionError" in scope.descriptor.message

    def test_unexpected_error_wrapped_in_register_phase(self, boundary):
        with boundary.capture(1, BlockPhase.REGISTER) as scope:
            raise TypeError("bad value")

        assert isinstance(scope.error, SpecError)
        assert scope.descriptor.phase == BlockPhase.REGISTER

    def test_inline_output(self, boundary):
        item = Container()
        item.append_html("<svg>old</svg>")

        with boundary.capture(0, container=item):
            raise SpecError("Chart <b>broken</b>")

        html = item.inner_html()
        assert "vb-error" in html
        assert "&lt;b&gt;broken&lt;/b&gt;" in html
        assert "<svg>old</svg>" not in html
        assert item.attributes["data-error-kind"] == "SpecError"

    def test_no_container_no_output(self, boundary):
        with boundary.capture(0, BlockPhase.REGISTER) as scope:
            raise SpecError("bad")

        assert scope.failed

    def test_events(self, boundary, events):
        render_errors, registration_errors = [], []
        events.on(EventType.ERROR, render_errors.append)
        events.on(EventType.REGISTRATION_ERROR, registration_errors.append)

        with boundary.capture(0):
            raise SpecError("render")
        with boundary.capture(1, BlockPhase.REGISTER):
            raise SpecError("register")

        assert [e.message for e in render_errors] == ["render"]
        assert [e.message for e in registration_errors] == ["register"]

    def test_run(self, boundary):
        result, error = boundary.run(lambda x: x * 2, 21, block_index=0)

        assert result == 42
        assert error is None

    def test_run_failure(self, boundary):
        result, error = boundary.run(lambda: 1 / 0, block_index=3)

        assert result is None
        assert error.kind == "RenderError"
        assert error.block_index == 3

    @pytest.mark.asyncio
    async def test_arun(self, boundary):
        async def fail():
            raise SpecError("async failure")

        result, error = await boundary.arun(fail, block_index=4)

        assert result is None
        assert error.message == "async failure"

    def test_errors_accumulate(self, boundary):
        for i in range(3):
            with boundary.capture(i):
                raise SpecError(f"error {i}")

        assert [e.block_index for e in boundary.errors] == [0, 1, 2]
        boundary.clear()
        assert boundary.errors == []


def test_error_html_escapes():
    assert error_html("<script>") == (
        '<div class="vb-error"><strong>Chart Error:</strong> &lt;script&gt;</div>'
    )
