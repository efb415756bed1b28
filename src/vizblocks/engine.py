"""Document rendering engine.

The engine drives the two-pass protocol over one document:

Pass 1 registers ``source``, ``style`` and ``config`` blocks into a fresh
Registry, in document order.

Pass 2 renders ``params`` blocks first and then ``chart`` blocks, each group
in document order. Params blocks publish their values and draw controls;
chart blocks resolve their spec against the Registry, are sized, placed on
the grid and dispatched to their renderer.

Every step runs inside an ErrorBoundary, so a failing block leaves an
inline error and never stops its siblings.

Example:
    >>> engine = create_engine()
    >>> container = Container(width=960)
    >>> result = await engine.render([
    ...     {"type": "source", "name": "sales", "rows": [{"month": "Jan", "revenue": 10}]},
    ...     {"source": "sales", "visualize": {"type": "bar", "columns": "month", "rows": "revenue"}},
    ... ], container)
    >>> result.success
    True
"""

from __future__ import annotations

import asyncio
import copy
import functools
import logging
import time
from collections import Counter
from typing import Any, Callable, Iterable, Mapping

import yaml

from vizblocks.base import (
    REGISTERED_KINDS,
    Block,
    BlockKind,
    BlockPhase,
    BlockResult,
    BlockStatus,
    ChartSpec,
    Dimensions,
    RenderResult,
)
from vizblocks.boundary import ErrorBoundary, error_html
from vizblocks.classifier import KIND_KEYS, BlockClassifier
from vizblocks.config import EngineSettings, deep_merge
from vizblocks.container import Container
from vizblocks.controls import render_params
from vizblocks.data import DataProviderRegistry, DataResolver
from vizblocks.dimensions import DimensionEstimator
from vizblocks.events import EventHub, EventType, Listener
from vizblocks.exceptions import SpecError, UnresolvedReference
from vizblocks.grid import GridCompositor, column_fraction, normalize_col_span
from vizblocks.params import extract_param_references, resolve_param_references
from vizblocks.registry import Registry
from vizblocks.renderers import RendererRegistry, create_default_renderer_registry
from vizblocks.scheduler import RenderScheduler

logger = logging.getLogger(__name__)


SOURCE_KEYS = ("source", "dataSource", "data")
_RESERVED_KEYS = frozenset(KIND_KEYS) | {"name"}


# =============================================================================
# Input normalization
# =============================================================================


def load_blocks(spec_or_blocks: Any) -> list[Any]:
    """Normalize render input to a list of raw blocks.

    Accepts a list of blocks, a mapping with a ``blocks`` list, a single
    block mapping, or YAML text (one block per document, or a list).

    Raises:
        SpecError: If the input cannot be interpreted.
    """
    if isinstance(spec_or_blocks, str):
        try:
            documents = [d for d in yaml.safe_load_all(spec_or_blocks) if d is not None]
        except yaml.YAMLError as e:
            raise SpecError(f"Invalid YAML document: {e}") from e
        if len(documents) == 1:
            return load_blocks(documents[0])
        blocks: list[Any] = []
        for document in documents:
            blocks.extend(document if isinstance(document, list) else [document])
        return blocks
    if isinstance(spec_or_blocks, Block):
        return [spec_or_blocks]
    if isinstance(spec_or_blocks, Mapping):
        if isinstance(spec_or_blocks.get("blocks"), list):
            return list(spec_or_blocks["blocks"])
        return [spec_or_blocks]
    if isinstance(spec_or_blocks, (list, tuple)):
        return list(spec_or_blocks)
    raise SpecError(
        f"Cannot render {type(spec_or_blocks).__name__}; expected blocks, a mapping or YAML text"
    )


def _payload(attributes: Mapping[str, Any]) -> dict[str, Any]:
    """Block attributes without the kind and name keys."""
    return {k: v for k, v in attributes.items() if k not in _RESERVED_KEYS}


# =============================================================================
# Chart spec resolution
# =============================================================================


def resolve_chart_spec(
    block: Block,
    registry: Registry,
    settings: EngineSettings,
    renderers: RendererRegistry | None = None,
) -> tuple[ChartSpec, dict[str, Any]]:
    """Merge a chart block with the registry entries it references.

    Returns:
        The ChartSpec (without data) and the source definition to fetch.

    Raises:
        SpecError: If the chart block is malformed.
        UnresolvedReference: If a referenced source, style, params block or
            chart type is not registered.
    """
    index = block.index
    attributes = copy.deepcopy(block.attributes)

    params_name, chart_params = _params_of(attributes, registry, index)
    param_refs = frozenset(extract_param_references(attributes))
    for ref in sorted(param_refs):
        scope = ref.split(".", 1)[0] if "." in ref else None
        if scope is not None and not registry.has(BlockKind.PARAMS, scope):
            raise UnresolvedReference(
                f"Parameter reference '${ref}' points to unknown params block '{scope}'",
                block_index=index,
                reference_kind=BlockKind.PARAMS.value,
                reference_name=scope,
            )

    values = registry.param_values()
    if params_name:
        values.update(registry.param_values(scope=params_name))
    resolved = resolve_param_references(attributes, values, chart_params)

    visualize = resolved.get("visualize")
    if not isinstance(visualize, Mapping):
        raise SpecError("Chart block must have a 'visualize' mapping", block_index=index)
    visualize = dict(visualize)
    chart_type = visualize.get("type")
    if not isinstance(chart_type, str) or not chart_type.strip():
        raise SpecError("Chart block must declare visualize.type", block_index=index)
    chart_type = chart_type.strip().lower()
    if renderers is not None and not renderers.has(chart_type):
        raise UnresolvedReference(
            f"No renderer registered for chart type '{chart_type}'. Available: {renderers.list_types()}",
            block_index=index,
            reference_kind="renderer",
            reference_name=chart_type,
        )

    style = _resolve_style(resolved, visualize, registry, index)
    visualize["style"] = style

    config = registry.merged_config()
    theme = deep_merge(settings.theme_defaults(), config.get("theme"))

    source_name, source = _resolve_source(resolved, registry, index)

    layout = resolved.get("layout") or {}
    col_span = normalize_col_span(layout.get("colSpan") if isinstance(layout, Mapping) else None)

    spec = ChartSpec(
        block_index=index,
        chart_type=chart_type,
        attributes=resolved,
        visualize=visualize,
        style=style,
        theme=theme,
        source_name=source_name,
        params_name=params_name,
        param_refs=param_refs,
        col_span=col_span,
    )
    return spec, source


def _params_of(
    attributes: Mapping[str, Any], registry: Registry, index: int
) -> tuple[str | None, list[dict[str, Any]] | None]:
    params = attributes.get("params")
    if params is None:
        return None, None
    if isinstance(params, str):
        if not registry.has(BlockKind.PARAMS, params):
            raise UnresolvedReference(
                f"Params block '{params}' not found. Available: {registry.names(BlockKind.PARAMS)}",
                block_index=index,
                reference_kind=BlockKind.PARAMS.value,
                reference_name=params,
            )
        return params, None
    if isinstance(params, list):
        return None, [p for p in params if isinstance(p, Mapping)]
    raise SpecError("Chart 'params' must be a params block name or a list of definitions", block_index=index)


def _resolve_style(
    attributes: Mapping[str, Any],
    visualize: Mapping[str, Any],
    registry: Registry,
    index: int,
) -> dict[str, Any]:
    style: dict[str, Any] = {}
    for candidate in (attributes.get("style"), visualize.get("style")):
        if candidate is None:
            continue
        if isinstance(candidate, str):
            if not registry.has(BlockKind.STYLE, candidate):
                raise UnresolvedReference(
                    f"Style '{candidate}' not found. Available: {registry.names(BlockKind.STYLE)}",
                    block_index=index,
                    reference_kind=BlockKind.STYLE.value,
                    reference_name=candidate,
                )
            style = deep_merge(style, registry.get(BlockKind.STYLE, candidate))
        elif isinstance(candidate, Mapping):
            style = deep_merge(style, candidate)
        else:
            raise SpecError("Chart style must be a style name or a mapping", block_index=index)
    return style


def _resolve_source(
    attributes: Mapping[str, Any], registry: Registry, index: int
) -> tuple[str | None, dict[str, Any]]:
    for key in SOURCE_KEYS:
        value = attributes.get(key)
        if value is None:
            continue
        if isinstance(value, str):
            if not registry.has(BlockKind.SOURCE, value):
                raise UnresolvedReference(
                    f"Source '{value}' not found. Available: {registry.names(BlockKind.SOURCE)}",
                    block_index=index,
                    reference_kind=BlockKind.SOURCE.value,
                    reference_name=value,
                )
            return value, dict(registry.get(BlockKind.SOURCE, value))
        if isinstance(value, list):
            return None, {"provider": "inline", "rows": value}
        if isinstance(value, Mapping):
            return None, dict(value)
        raise SpecError(f"Chart '{key}' must be a source name, rows or a source definition", block_index=index)
    raise SpecError("Chart block has no data; set 'source' or inline 'data'", block_index=index)


def build_render_config(
    spec: ChartSpec,
    dimensions: Dimensions,
    item_width: float | None,
    settings: EngineSettings,
) -> dict[str, Any]:
    """The ``config`` mapping handed to a renderer."""
    title_height = settings.title_height if spec.title else 0
    return {
        "chart_type": spec.chart_type,
        "block_index": spec.block_index,
        "title": spec.title,
        "colors": spec.colors,
        "style": spec.style,
        "theme": spec.theme,
        "visualize": spec.visualize,
        "category_field": spec.category_field,
        "value_fields": spec.value_fields,
        "width": dimensions.width or item_width,
        "height": dimensions.height - title_height,
        "default_width": settings.default_container_width,
    }


# =============================================================================
# Rendered document
# =============================================================================


class RenderedDocument:
    """One document rendered into a host container.

    Owns the document's Registry, its grid, the per-block generation
    counters and the debounce scheduler for edits.

    Attributes:
        registry: Registry of the latest full render.
        result: Document-level result of the latest render.
        render_count: Number of full renders performed.
        chart_render_counts: Renders per chart block index.
    """

    def __init__(self, engine: "VizEngine", container: Container) -> None:
        self.engine = engine
        self.container = container
        self.registry = Registry()
        self.blocks: list[Block] = []
        self.result: RenderResult | None = None
        self.render_count = 0
        self.chart_render_counts: Counter[int] = Counter()
        self.scheduler = RenderScheduler(self._rerender, engine.settings.debounce_delay)

        self._grid: Container | None = None
        self._generations: Counter[int] = Counter()
        self._epoch = 0
        self._block_results: dict[int, BlockResult] = {}
        self._dimensions: dict[int, Dimensions] = {}
        self._callbacks: dict[int, Callable[[str, Any], None]] = {}
        self._subscriptions: dict[int, set[str]] = {}
        self._dirty: set[int] = set()
        self._applying_params = False
        self._flush_task: asyncio.Task | None = None
        self._closed = False

    @property
    def settings(self) -> EngineSettings:
        return self.engine.settings

    # -------------------------------------------------------------------------
    # Full renders
    # -------------------------------------------------------------------------

    async def render(self, spec_or_blocks: Any) -> RenderResult:
        """Render the whole document, replacing any previous output.

        A render overtaken by a newer one stops at its next chart and commits
        nothing; it returns the latest committed result instead.
        """
        start = time.perf_counter()
        self.render_count += 1
        self._epoch += 1
        epoch = self._epoch
        self._reset()
        boundary = ErrorBoundary(self.engine.events)

        with boundary.capture(None, BlockPhase.CLASSIFY, container=self.container) as scope:
            raw_blocks = load_blocks(spec_or_blocks)
        if scope.failed:
            return self._finish(start, boundary)

        self.blocks = self.engine.classifier.classify(raw_blocks)
        self._grid = self.engine.grid.create_grid(self.container)

        for block in self.blocks:
            if not block.is_valid:
                item = self._place(block, 12)
                error = boundary.wrap(block.error, block.index, BlockPhase.CLASSIFY)
                descriptor = boundary.report(error, BlockPhase.CLASSIFY, container=item)
                self._store(BlockResult(block.index, None, BlockStatus.ERROR, error=descriptor))

        # Pass 1
        for block in self.blocks:
            if block.is_valid and block.kind in REGISTERED_KINDS:
                self._register(block, boundary)

        # Pass 2: params first, then charts
        for block in self.blocks:
            if block.is_valid and block.kind == BlockKind.PARAMS:
                self._render_params(block, boundary)

        charts = [b for b in self.blocks if b.is_valid and b.kind == BlockKind.CHART]
        await self._render_charts(charts, boundary, epoch)

        if epoch != self._epoch:
            logger.debug("Render %d superseded by render %d", epoch, self._epoch)
            return self.result
        return self._finish(start, boundary)

    def edit(self, spec_or_blocks: Any) -> None:
        """Schedule a debounced full re-render with new content."""
        if self._closed:
            raise RuntimeError("Document is closed")
        self.scheduler.schedule(spec_or_blocks)

    async def settle(self) -> RenderResult | None:
        """Wait for pending edits and parameter re-renders to finish."""
        await self.scheduler.wait()
        if self._flush_task is not None:
            await self._flush_task
        return self.result

    def close(self) -> None:
        """Cancel pending work and release the registry."""
        self._closed = True
        self.scheduler.cancel()
        self._unsubscribe_all()
        self.registry.clear()

    async def _rerender(self, spec_or_blocks: Any) -> None:
        if self._closed:
            return
        logger.debug("Re-rendering document after edit")
        await self.render(spec_or_blocks)

    def _reset(self) -> None:
        self._unsubscribe_all()
        self.registry = Registry()
        self.blocks = []
        self._block_results.clear()
        self._dimensions.clear()
        self._dirty.clear()
        self.container.clear()
        self._grid = None

    # -------------------------------------------------------------------------
    # Parameters
    # -------------------------------------------------------------------------

    async def set_param(self, param_name: str, value: Any) -> list[BlockResult]:
        """Update a parameter and re-render the charts subscribed to it.

        Returns:
            Results of the re-rendered chart blocks; empty when the value
            did not change.

        Raises:
            RegistryKeyError: If no params block declares the parameter.
        """
        self._applying_params = True
        try:
            changed = self.registry.set_param(param_name, value)
        finally:
            self._applying_params = False
        if changed:
            self._refresh_controls(param_name.split(".", 1)[0])
        return await self._flush_dirty()

    def _on_param_change(self, block_index: int, param_name: str, value: Any) -> None:
        self._dirty.add(block_index)
        if self._applying_params:
            return
        # Updated directly through the registry; re-render on the running loop
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("Parameter '%s' changed outside an event loop; re-render deferred", param_name)
            return
        if self._flush_task is None or self._flush_task.done():
            self._flush_task = loop.create_task(self._flush_dirty())

    async def _flush_dirty(self) -> list[BlockResult]:
        dirty, self._dirty = sorted(self._dirty), set()
        if not dirty:
            return []
        by_index = {b.index: b for b in self.blocks}
        blocks = [by_index[i] for i in dirty if i in by_index]
        epoch = self._epoch
        boundary = ErrorBoundary(self.engine.events)
        results = await self._render_charts(blocks, boundary, epoch)
        if self.result is not None and epoch == self._epoch:
            self._refresh_result()
        return [r for r in results if r.status != BlockStatus.STALE]

    def _subscribe(self, block_index: int, param_names: Iterable[str]) -> None:
        callback = self._callbacks.get(block_index)
        if callback is None:
            callback = functools.partial(self._on_param_change, block_index)
            self._callbacks[block_index] = callback
        names = set(param_names)
        for name in self._subscriptions.get(block_index, set()) - names:
            self.registry.unsubscribe(name, callback)
        for name in names:
            self.registry.subscribe(name, callback)
        self._subscriptions[block_index] = names

    def _unsubscribe_all(self) -> None:
        for block_index, names in self._subscriptions.items():
            callback = self._callbacks[block_index]
            for name in names:
                self.registry.unsubscribe(name, callback)
        self._subscriptions.clear()
        self._callbacks.clear()

    def _refresh_controls(self, scope: str) -> None:
        definition = self.registry.find(BlockKind.PARAMS, scope)
        if definition is None or self._grid is None:
            return
        for block in self.blocks:
            if block.kind == BlockKind.PARAMS and block.name == scope:
                item = self.engine.grid.find(self._grid, block.index)
                if item is not None:
                    render_params(scope, definition["params"], self.registry.param_values(scope), item)

    # -------------------------------------------------------------------------
    # Block processing
    # -------------------------------------------------------------------------

    def _register(self, block: Block, boundary: ErrorBoundary) -> None:
        with boundary.capture(block.index, BlockPhase.REGISTER) as scope:
            self.registry.register(block.kind, block.name, _payload(block.attributes))
        if scope.failed:
            self._store(BlockResult(block.index, block.kind, BlockStatus.ERROR, error=scope.descriptor))
        else:
            self._store(BlockResult(block.index, block.kind, BlockStatus.REGISTERED))

    def _render_params(self, block: Block, boundary: ErrorBoundary) -> None:
        start = time.perf_counter()
        layout = block.attributes.get("layout")
        item = self._place(block, layout.get("colSpan") if isinstance(layout, Mapping) else None)
        with boundary.capture(block.index, BlockPhase.RENDER, container=item) as scope:
            self.registry.register_params(block.name, _payload(block.attributes))
            definition = self.registry.get(BlockKind.PARAMS, block.name)
            render_params(block.name, definition["params"], self.registry.param_values(block.name), item)
        if scope.failed:
            self._store(BlockResult(block.index, block.kind, BlockStatus.ERROR, error=scope.descriptor))
            return
        result = RenderResult(
            handle=item,
            width=item.width,
            height=0.0,
            render_time_ms=(time.perf_counter() - start) * 1000,
        )
        self._store(BlockResult(block.index, block.kind, BlockStatus.RENDERED, result=result))

    async def _render_charts(
        self, blocks: list[Block], boundary: ErrorBoundary, epoch: int
    ) -> list[BlockResult]:
        if self.settings.concurrent_charts and len(blocks) > 1:
            return list(await asyncio.gather(*(self._render_chart(b, boundary, epoch) for b in blocks)))
        results = []
        for block in blocks:
            results.append(await self._render_chart(block, boundary, epoch))
        return results

    async def _render_chart(self, block: Block, boundary: ErrorBoundary, epoch: int) -> BlockResult:
        if epoch != self._epoch:
            # The document was re-rendered; this block belongs to an older grid
            return BlockResult(block.index, block.kind, BlockStatus.STALE)
        self._generations[block.index] += 1
        generation = self._generations[block.index]
        start = time.perf_counter()
        self.chart_render_counts[block.index] += 1

        item = self._chart_item(block)
        staging = Container(width=item.width)
        dimensions: Dimensions | None = None
        visualize = block.attributes.get("visualize")
        chart_type = visualize.get("type") if isinstance(visualize, Mapping) else None

        with boundary.capture(block.index, BlockPhase.RENDER, chart_type=chart_type) as scope:
            self._subscribe(block.index, self._param_names(block))
            spec, source = resolve_chart_spec(block, self.registry, self.settings, self.engine.renderers)
            dimensions = self.engine.estimator.estimate(spec, item.width)
            self._dimensions[block.index] = dimensions
            item.set_min_height(dimensions.height)

            aggregate_spec = spec.attributes.get("aggregate")
            spec.data = await self.engine.data.resolve(source, aggregate_spec)
            if self._is_current(block.index, generation, epoch):
                config = build_render_config(spec, dimensions, item.width, self.settings)
                await self.engine.renderers.invoke(spec.chart_type, staging, spec.data, config)

        if not self._is_current(block.index, generation, epoch):
            logger.debug("Discarding stale render of block %d (generation %d)", block.index, generation)
            return BlockResult(block.index, block.kind, BlockStatus.STALE, generation=generation)

        if scope.failed:
            item.replace_with_html(error_html(scope.descriptor.message))
            item.attributes["data-error-kind"] = scope.descriptor.kind
            result = BlockResult(
                block.index, block.kind, BlockStatus.ERROR, error=scope.descriptor, generation=generation
            )
        else:
            item.adopt(staging)
            item.attributes.pop("data-error-kind", None)
            result = BlockResult(
                block.index,
                block.kind,
                BlockStatus.RENDERED,
                result=RenderResult(
                    handle=item,
                    width=dimensions.width or item.width,
                    height=dimensions.height,
                    render_time_ms=(time.perf_counter() - start) * 1000,
                ),
                generation=generation,
            )
        self._store(result)
        return result

    def _param_names(self, block: Block) -> set[str]:
        """Dotted parameter names a chart depends on."""
        names = set()
        params = block.attributes.get("params")
        for ref in extract_param_references(block.attributes):
            if "." in ref:
                names.add(ref)
            elif isinstance(params, str):
                names.add(f"{params}.{ref}")
        return names

    def _chart_item(self, block: Block) -> Container:
        """Existing grid item of a chart, or a newly placed one."""
        if self._grid is not None:
            item = self.engine.grid.find(self._grid, block.index)
            if item is not None:
                return item
        layout = block.attributes.get("layout")
        return self._place(block, layout.get("colSpan") if isinstance(layout, Mapping) else None)

    def _is_current(self, block_index: int, generation: int, epoch: int) -> bool:
        return self._generations[block_index] == generation and epoch == self._epoch and not self._closed

    def _place(self, block: Block, col_span: Any) -> Container:
        if self._grid is None:
            self._grid = self.engine.grid.create_grid(self.container)
        return self.engine.grid.place(self._grid, block.index, col_span, self._viewport_width())

    def _viewport_width(self) -> float:
        return float(self.container.width or self.settings.default_container_width)

    # -------------------------------------------------------------------------
    # Results
    # -------------------------------------------------------------------------

    def _store(self, result: BlockResult) -> None:
        self._block_results[result.index] = result

    def _finish(self, start: float, boundary: ErrorBoundary) -> RenderResult:
        self.result = RenderResult(
            handle=self.container,
            width=self.container.width,
            height=0.0,
            render_time_ms=(time.perf_counter() - start) * 1000,
        )
        self._refresh_result(extra_errors=[e for e in boundary.errors if e.block_index is None])
        return self.result

    def _refresh_result(self, extra_errors: list | None = None) -> None:
        ordered = [self._block_results[i] for i in sorted(self._block_results)]
        self.result.blocks = ordered
        unscoped = extra_errors if extra_errors is not None else [
            e for e in self.result.errors if e.block_index is None
        ]
        self.result.errors = list(unscoped) + [r.error for r in ordered if r.error is not None]
        self.result.height = self._layout_height()

    def _layout_height(self) -> float:
        """Height of the grid: items flow into rows of 12 columns."""
        viewport = self._viewport_width()
        breakpoint = self.settings.mobile_breakpoint
        total = 0.0
        row_fill = 0.0
        row_height = 0.0
        for block in self.blocks:
            dims = self._dimensions.get(block.index)
            if dims is None:
                continue
            layout = block.attributes.get("layout")
            span = layout.get("colSpan") if isinstance(layout, Mapping) else None
            fraction = column_fraction(span, viewport, breakpoint)
            if row_fill + fraction > 1.0 + 1e-9:
                total += row_height
                row_fill, row_height = 0.0, 0.0
            row_fill += fraction
            row_height = max(row_height, dims.height)
        return total + row_height


# =============================================================================
# Engine
# =============================================================================


class VizEngine:
    """Renders documents of visualization blocks.

    An engine holds the pluggable parts (renderers, data providers, event
    listeners, settings). Each render gets its own Registry; documents never
    share state through the engine.
    """

    def __init__(
        self,
        settings: EngineSettings | None = None,
        renderers: RendererRegistry | None = None,
        providers: DataProviderRegistry | None = None,
        events: EventHub | None = None,
    ) -> None:
        self.settings = settings or EngineSettings()
        self.renderers = renderers if renderers is not None else RendererRegistry()
        self.providers = providers if providers is not None else DataProviderRegistry()
        self.events = events if events is not None else EventHub()
        self.classifier = BlockClassifier()
        self.estimator = DimensionEstimator(self.renderers, self.settings)
        self.grid = GridCompositor(self.settings)
        self.data = DataResolver(self.providers, self.events)

    def register_chart_renderer(self, type_name: str, renderer: Callable[..., Any]) -> None:
        """Add or replace the renderer for a chart type.

        Raises:
            ValueError: If the renderer does not accept ``(container, data, config)``.
        """
        if self.renderers.has(type_name):
            logger.warning("Renderer '%s' is already registered and will be overwritten", type_name)
        self.renderers.register(type_name, renderer)

    def register_data_provider(self, name: str, provider: Callable[..., Any]) -> None:
        """Add or replace a data provider."""
        self.providers.register(name, provider)

    def on(self, event: EventType | str, handler: Callable[..., Any]) -> Listener:
        """Listen to an engine event."""
        return self.events.on(event, handler)

    def get_expected_dimensions(
        self,
        spec: ChartSpec | Mapping[str, Any] | str,
        container_width: float | None = None,
    ) -> Dimensions:
        """Estimate a chart's box before rendering it. Never raises."""
        if isinstance(spec, str):
            try:
                spec = yaml.safe_load(spec)
            except yaml.YAMLError as e:
                logger.warning("Failed to parse chart spec: %s", e)
                return Dimensions(width=None, height=float(self.settings.fallback_height))
        return self.estimator.estimate(spec, container_width)

    async def render(self, spec_or_blocks: Any, container: Container | None = None) -> RenderResult:
        """Render a document (or a single chart spec) into ``container``.

        Failures are captured per block; this method does not raise for
        invalid input.
        """
        document = await self.render_document(spec_or_blocks, container)
        document.close()
        return document.result

    async def render_document(
        self,
        spec_or_blocks: Any,
        container: Container | None = None,
    ) -> RenderedDocument:
        """Render a document and keep it alive for edits and parameter updates."""
        if container is None:
            container = Container(width=self.settings.default_container_width)
        document = RenderedDocument(self, container)
        await document.render(spec_or_blocks)
        return document


def create_engine(settings: EngineSettings | None = None, **overrides: Any) -> VizEngine:
    """Create an engine with the built-in renderers and data providers.

    Args:
        settings: Base settings; defaults come from ``VIZBLOCKS_*`` variables.
        **overrides: Settings fields to override.
    """
    settings = settings or EngineSettings.from_env()
    if overrides:
        settings = settings.with_overrides(**overrides)
    return VizEngine(
        settings=settings,
        renderers=create_default_renderer_registry(),
        providers=DataProviderRegistry(),
    )
