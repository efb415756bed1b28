"""Per-block failure isolation.

Every registration and render runs inside an ErrorBoundary. A failure is
turned into an ``ErrorDescriptor``, logged, optionally drawn inline in the
block's container and published on the engine's event hub. It never
propagates to sibling blocks or to the caller of ``render()``.

Example:
    >>> boundary = ErrorBoundary(events)
    >>> with boundary.capture(block_index=2, container=item) as scope:
    ...     renderer(item, data, config)
    >>> scope.failed
    False
"""

from __future__ import annotations

import html
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterator, TypeVar

from vizblocks.base import BlockPhase, ErrorDescriptor
from vizblocks.container import Container
from vizblocks.events import EventHub, EventType
from vizblocks.exceptions import RenderError, SpecError, VizBlocksError

logger = logging.getLogger(__name__)

T = TypeVar("T")

ERROR_CLASS = "vb-error"


def error_html(message: str) -> str:
    """Inline error presentation with the message escaped."""
    return f'<div class="{ERROR_CLASS}"><strong>Chart Error:</strong> {html.escape(str(message))}</div>'


@dataclass
class BoundaryScope:
    """Handle yielded by ``ErrorBoundary.capture``."""

    descriptor: ErrorDescriptor | None = None
    error: VizBlocksError | None = None

    @property
    def failed(self) -> bool:
        return self.descriptor is not None


class ErrorBoundary:
    """Capture block failures into structured descriptors.

    Attributes:
        events: Hub receiving ``error`` (render phase) and
            ``registration_error`` (classify and register phases) events.
        errors: Descriptors captured so far, in capture order.
    """

    def __init__(self, events: EventHub | None = None) -> None:
        self.events = events
        self.errors: list[ErrorDescriptor] = []

    @contextmanager
    def capture(
        self,
        block_index: int | None,
        phase: BlockPhase = BlockPhase.RENDER,
        container: Container | None = None,
        chart_type: str | None = None,
    ) -> Iterator[BoundaryScope]:
        """Run the body, capturing any exception it raises.

        Args:
            block_index: Index of the block being processed.
            phase: Pipeline phase, decides the event and log level.
            container: Receives the inline error presentation, if given.
            chart_type: Chart type, recorded on wrapped render errors.
        """
        scope = BoundaryScope()
        try:
            yield scope
        except Exception as e:
            scope.error = self.wrap(e, block_index, phase, chart_type)
            scope.descriptor = self.report(scope.error, phase, container)

    def run(
        self,
        func: Callable[..., T],
        *args: Any,
        block_index: int | None = None,
        phase: BlockPhase = BlockPhase.RENDER,
        container: Container | None = None,
    ) -> tuple[T | None, ErrorDescriptor | None]:
        """Call ``func`` inside the boundary.

        Returns:
            ``(result, None)`` on success, ``(None, descriptor)`` on failure.
        """
        result = None
        with self.capture(block_index, phase, container) as scope:
            result = func(*args)
        return result, scope.descriptor

    async def arun(
        self,
        func: Callable[..., Awaitable[T]],
        *args: Any,
        block_index: int | None = None,
        phase: BlockPhase = BlockPhase.RENDER,
        container: Container | None = None,
    ) -> tuple[T | None, ErrorDescriptor | None]:
        """Await ``func(*args)`` inside the boundary."""
        result = None
        with self.capture(block_index, phase, container) as scope:
            result = await func(*args)
        return result, scope.descriptor

    @staticmethod
    def wrap(
        error: Exception,
        block_index: int | None,
        phase: BlockPhase,
        chart_type: str | None = None,
    ) -> VizBlocksError:
        """Convert any exception to a VizBlocksError scoped to the block."""
        if isinstance(error, VizBlocksError):
            if error.block_index is None:
                error.block_index = block_index
            return error
        if phase == BlockPhase.RENDER:
            wrapped: VizBlocksError = RenderError(
                f"{type(error).__name__}: {error}",
                block_index=block_index,
                chart_type=chart_type,
                cause=error,
            )
        else:
            wrapped = SpecError(f"{type(error).__name__}: {error}", block_index=block_index)
        wrapped.__cause__ = error
        return wrapped

    def report(
        self,
        error: VizBlocksError,
        phase: BlockPhase,
        container: Container | None = None,
    ) -> ErrorDescriptor:
        """Record, log, draw and publish a captured error."""
        descriptor = ErrorDescriptor(
            kind=error.kind,
            message=error.message,
            block_index=error.block_index,
            phase=phase,
        )
        self.errors.append(descriptor)

        if phase == BlockPhase.RENDER:
            logger.error(
                "Block %s failed to render: %s: %s",
                error.block_index, descriptor.kind, descriptor.message,
                exc_info=error if isinstance(error, RenderError) else None,
            )
        else:
            logger.warning(
                "Block %s failed to %s: %s: %s",
                error.block_index, phase.value, descriptor.kind, descriptor.message,
            )

        if container is not None:
            container.replace_with_html(error_html(descriptor.message))
            container.attributes["data-error-kind"] = descriptor.kind

        if self.events is not None:
            event = EventType.ERROR if phase == BlockPhase.RENDER else EventType.REGISTRATION_ERROR
            self.events.emit(event, descriptor)
        return descriptor

    def clear(self) -> None:
        self.errors.clear()
