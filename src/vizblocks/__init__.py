"""vizblocks - Declarative Visualization Blocks Rendered with Polars."""

from vizblocks.base import (
    Block,
    BlockKind,
    BlockPhase,
    BlockResult,
    BlockStatus,
    ChartSpec,
    Dimensions,
    ErrorDescriptor,
    RenderResult,
)
from vizblocks.config import EngineSettings
from vizblocks.container import Container
from vizblocks.engine import RenderedDocument, VizEngine, create_engine, load_blocks
from vizblocks.events import EventHub, EventType
from vizblocks.exceptions import (
    MissingRequiredConfig,
    RenderError,
    SpecError,
    UnknownBlockKind,
    UnresolvedReference,
    VizBlocksError,
)
from vizblocks.export import PageConfig, generate_page, write_page
from vizblocks.registry import Registry
from vizblocks.renderers import default_dimensions

__version__ = "0.1.0"

__all__ = [
    # Engine
    "VizEngine",
    "RenderedDocument",
    "create_engine",
    "load_blocks",
    "EngineSettings",
    "Container",
    "Registry",
    "EventHub",
    "EventType",
    "default_dimensions",
    # Types
    "Block",
    "BlockKind",
    "BlockPhase",
    "BlockResult",
    "BlockStatus",
    "ChartSpec",
    "Dimensions",
    "ErrorDescriptor",
    "RenderResult",
    # Errors
    "VizBlocksError",
    "SpecError",
    "UnknownBlockKind",
    "UnresolvedReference",
    "MissingRequiredConfig",
    "RenderError",
    # Export
    "PageConfig",
    "generate_page",
    "write_page",
]
