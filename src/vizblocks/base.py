"""Base types and abstractions for vizblocks.

This module provides the foundational data structures and protocols shared
by the classifier, registry, renderers and engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Protocol, runtime_checkable

if TYPE_CHECKING:
    import polars as pl

    from vizblocks.container import Container
    from vizblocks.events import EventHub


# =============================================================================
# Enums
# =============================================================================


class BlockKind(str, Enum):
    """Kinds of document blocks."""

    SOURCE = "source"
    STYLE = "style"
    CONFIG = "config"
    PARAMS = "params"
    CHART = "chart"

    @classmethod
    def values(cls) -> list[str]:
        return [kind.value for kind in cls]


# Kinds registered in the first pass (never drawn)
REGISTERED_KINDS = frozenset({BlockKind.SOURCE, BlockKind.STYLE, BlockKind.CONFIG})


class BlockPhase(str, Enum):
    """Stage of the pipeline a block failure happened in."""

    CLASSIFY = "classify"
    REGISTER = "register"
    RENDER = "render"


class BlockStatus(str, Enum):
    """Outcome of processing a single block."""

    REGISTERED = "registered"
    RENDERED = "rendered"
    ERROR = "error"
    STALE = "stale"


class LegendPlacement(str, Enum):
    """Where an auxiliary legend is drawn relative to the primary shape."""

    RIGHT = "right"
    BOTTOM = "bottom"


# =============================================================================
# Data Structures
# =============================================================================


@dataclass
class Block:
    """One declarative unit of a document.

    Attributes:
        index: Position of the block in its document.
        kind: Resolved block kind.
        attributes: Ordered attribute mapping as authored.
        error: Classification error scoped to this block, if any.
    """

    index: int
    kind: BlockKind
    attributes: dict[str, Any] = field(default_factory=dict)
    error: Exception | None = None

    @property
    def name(self) -> str | None:
        name = self.attributes.get("name")
        return name if isinstance(name, str) else None

    @property
    def is_valid(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class Dimensions:
    """Expected chart geometry. ``width`` is None for responsive charts."""

    width: float | None
    height: float

    def to_dict(self) -> dict[str, Any]:
        return {"width": self.width, "height": self.height}


@dataclass
class ChartSpec:
    """A chart block merged with everything it references.

    Attributes:
        block_index: Position of the chart block in its document.
        chart_type: Renderer type name (``visualize.type``).
        attributes: Chart attributes after parameter substitution.
        visualize: The ``visualize`` mapping with the named style inlined.
        style: Resolved style mapping (named style merged with inline style).
        theme: Theme defaults merged from system defaults and config blocks.
        data: Resolved data rows, filled in by the data layer.
        source_name: Name of the referenced source block, if any.
        params_name: Name of the referenced params block, if any.
        param_refs: Parameter paths the chart depends on.
        col_span: Grid column span (1-12).
    """

    block_index: int
    chart_type: str
    attributes: dict[str, Any] = field(default_factory=dict)
    visualize: dict[str, Any] = field(default_factory=dict)
    style: dict[str, Any] = field(default_factory=dict)
    theme: dict[str, Any] = field(default_factory=dict)
    data: "pl.DataFrame | None" = None
    source_name: str | None = None
    params_name: str | None = None
    param_refs: frozenset[str] = field(default_factory=frozenset)
    col_span: int = 12

    @property
    def title(self) -> str:
        title = self.attributes.get("title") or self.visualize.get("title") or ""
        return str(title)

    @property
    def colors(self) -> list[str] | None:
        colors = self.style.get("colors")
        if colors is None:
            colors = self.theme.get("colors")
        return list(colors) if colors else None

    @property
    def category_field(self) -> str | None:
        return first_field(self.visualize.get("columns"))

    @property
    def value_fields(self) -> list[str]:
        rows = self.visualize.get("rows")
        if rows is None:
            return []
        if not isinstance(rows, list):
            rows = [rows]
        return [f for f in (first_field(r) for r in rows) if f]


def first_field(spec: Any) -> str | None:
    """Extract a field name from a string, mapping or list field spec."""
    if isinstance(spec, list):
        spec = spec[0] if spec else None
    if isinstance(spec, str):
        return spec
    if isinstance(spec, dict):
        value = spec.get("field")
        return value if isinstance(value, str) else None
    return None


@dataclass(frozen=True)
class ErrorDescriptor:
    """Structured description of a failure captured by the error boundary."""

    kind: str
    message: str
    block_index: int | None
    phase: BlockPhase = BlockPhase.RENDER

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "block_index": self.block_index,
            "phase": self.phase.value,
        }


@dataclass
class RenderResult:
    """Result of a render call.

    Attributes:
        handle: The container that received the output.
        width: Rendered width (None when responsive).
        height: Rendered height.
        render_time_ms: Wall time spent rendering.
        blocks: Per-block outcomes (document renders only).
        errors: Errors captured while rendering.
    """

    handle: "Container"
    width: float | None
    height: float
    render_time_ms: float = 0.0
    blocks: list["BlockResult"] = field(default_factory=list)
    errors: list[ErrorDescriptor] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


@dataclass
class BlockResult:
    """Outcome of processing one block of a document."""

    index: int
    kind: BlockKind | None
    status: BlockStatus
    result: RenderResult | None = None
    error: ErrorDescriptor | None = None
    generation: int = 0


# =============================================================================
# Protocols
# =============================================================================


@runtime_checkable
class ChartRenderer(Protocol):
    """Protocol for chart-type renderers.

    A renderer clears ``container`` before drawing, raises
    ``MissingRequiredConfig`` for absent required attributes and confines
    its side effects to ``container``. It may be a coroutine function.
    """

    def __call__(
        self,
        container: "Container",
        data: "pl.DataFrame",
        config: dict[str, Any],
    ) -> None | Awaitable[None]:
        ...


@runtime_checkable
class DataProvider(Protocol):
    """Protocol for data providers resolving a source definition to rows."""

    def __call__(
        self,
        source: dict[str, Any],
        events: "EventHub",
    ) -> Any:
        ...
