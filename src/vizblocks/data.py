"""Data providers and resolution of chart data.

A source definition names a provider (``inline`` unless stated otherwise).
Providers turn the definition into rows; the resolver converts the rows to a
``polars.DataFrame``, applies the chart's aggregation and caches the result
per engine instance. Providers receive the engine's EventHub so they can
report progress and cache activity to the host.

Example:
    >>> providers = DataProviderRegistry()
    >>> providers.register("static", lambda source, events: [{"x": 1}])
    >>> resolver = DataResolver(providers, EventHub())
    >>> df = await resolver.resolve({"provider": "static"})
"""

from __future__ import annotations

import hashlib
import inspect
import json
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Mapping

import polars as pl

from vizblocks.aggregate import aggregate
from vizblocks.events import EventHub
from vizblocks.exceptions import SpecError

logger = logging.getLogger(__name__)


DEFAULT_CACHE_TTL = 300.0
DEFAULT_CACHE_SIZE = 256


# =============================================================================
# Conversion
# =============================================================================


def to_dataframe(rows: Any) -> pl.DataFrame:
    """Convert provider output to a DataFrame.

    Accepts a DataFrame, a list of row mappings, a mapping of columns, or a
    mapping with a ``data`` key holding any of those.

    Raises:
        SpecError: If the rows cannot be converted.
    """
    if isinstance(rows, pl.DataFrame):
        return rows
    if isinstance(rows, pl.LazyFrame):
        return rows.collect()
    if isinstance(rows, Mapping) and "data" in rows:
        return to_dataframe(rows["data"])
    if rows is None:
        return pl.DataFrame()
    if isinstance(rows, Mapping):
        try:
            return pl.DataFrame(dict(rows))
        except (TypeError, ValueError, pl.exceptions.PolarsError) as e:
            raise SpecError(f"Cannot build a table from column mapping: {e}") from e
    if isinstance(rows, list):
        if not rows:
            return pl.DataFrame()
        if not all(isinstance(r, Mapping) for r in rows):
            raise SpecError("Data rows must be mappings of field names to values")
        try:
            return pl.from_dicts([dict(r) for r in rows], infer_schema_length=None)
        except (TypeError, ValueError, pl.exceptions.PolarsError) as e:
            raise SpecError(f"Cannot build a table from data rows: {e}") from e
    raise SpecError(f"Unsupported data of type {type(rows).__name__}")


def inline_provider(source: Mapping[str, Any], events: EventHub) -> Any:
    """Built-in provider returning the rows embedded in the definition."""
    rows = source.get("rows", source.get("data"))
    if rows is None:
        raise SpecError("Inline source must have 'rows' or 'data'")
    return rows


# =============================================================================
# Provider Registry
# =============================================================================


class DataProviderRegistry:
    """Registry of data providers by name.

    A provider is a callable ``(source, events)`` returning rows, or an
    awaitable resolving to rows.
    """

    def __init__(self, include_builtin: bool = True) -> None:
        self._providers: dict[str, Callable[..., Any]] = {}
        if include_builtin:
            self._providers["inline"] = inline_provider

    def register(self, name: str, provider: Callable[..., Any], replace: bool = True) -> None:
        """Register a provider.

        Raises:
            ValueError: If ``provider`` does not accept ``(source, events)``,
                or ``name`` is taken and ``replace`` is False.
        """
        if not name or not isinstance(name, str):
            raise ValueError("Provider name must be a non-empty string")
        _check_arity(provider, 2, "Data provider")
        key = name.lower()
        if key in self._providers and not replace:
            raise ValueError(f"Data provider '{name}' already registered")
        self._providers[key] = provider
        logger.debug("Registered data provider: %s", key)

    def unregister(self, name: str) -> bool:
        return self._providers.pop(name.lower(), None) is not None

    def get(self, name: str) -> Callable[..., Any]:
        """Get a provider.

        Raises:
            KeyError: If the provider is not registered.
        """
        key = name.lower()
        if key not in self._providers:
            available = list(self._providers.keys())
            raise KeyError(f"Data provider '{name}' not found. Available: {available}")
        return self._providers[key]

    def has(self, name: str) -> bool:
        return name.lower() in self._providers

    def list_providers(self) -> list[str]:
        return list(self._providers.keys())


# =============================================================================
# Resolver
# =============================================================================


@dataclass
class _CacheEntry:
    data: pl.DataFrame
    stored_at: float


class DataResolver:
    """Resolve source definitions to aggregated DataFrames.

    Results are cached by the content of the source definition and the
    aggregation spec for ``cache_ttl`` seconds. Expired entries are dropped
    whenever a result is stored, and at most ``max_entries`` are kept, least
    recently used first out. Concurrent requests for the same key are not
    deduplicated.
    """

    def __init__(
        self,
        providers: DataProviderRegistry,
        events: EventHub,
        cache_ttl: float = DEFAULT_CACHE_TTL,
        max_entries: int = DEFAULT_CACHE_SIZE,
    ) -> None:
        if max_entries < 1:
            raise ValueError(f"max_entries must be at least 1, got {max_entries}")
        self.providers = providers
        self.events = events
        self.cache_ttl = cache_ttl
        self.max_entries = max_entries
        self._cache: OrderedDict[str, _CacheEntry] = OrderedDict()

    async def resolve(
        self,
        source: Mapping[str, Any],
        aggregate_spec: Mapping[str, Any] | None = None,
        bypass_cache: bool = False,
    ) -> pl.DataFrame:
        """Fetch, convert and aggregate the data of one chart.

        Raises:
            SpecError: If the provider is unknown or the data is malformed.
        """
        key = cache_key(source, aggregate_spec)
        if not bypass_cache:
            cached = self._cache.get(key)
            if cached is not None:
                if time.monotonic() - cached.stored_at < self.cache_ttl:
                    self._cache.move_to_end(key)
                    self.events.cache_hit(key)
                    return cached.data
                del self._cache[key]
        self.events.cache_miss(key)

        provider_name = str(source.get("provider", "inline"))
        try:
            provider = self.providers.get(provider_name)
        except KeyError as e:
            raise SpecError(str(e.args[0])) from None

        self.events.progress(0)
        rows = provider(dict(source), self.events)
        if inspect.isawaitable(rows):
            rows = await rows
        frame = aggregate(to_dataframe(rows), aggregate_spec)
        self.events.progress(100)

        self._store(key, frame)
        return frame

    def _store(self, key: str, frame: pl.DataFrame) -> None:
        now = time.monotonic()
        expired = [k for k, entry in self._cache.items() if now - entry.stored_at >= self.cache_ttl]
        for k in expired:
            del self._cache[k]
        self._cache[key] = _CacheEntry(data=frame, stored_at=now)
        self._cache.move_to_end(key)
        while len(self._cache) > self.max_entries:
            evicted, _ = self._cache.popitem(last=False)
            logger.debug("Evicted cached data %s", evicted)

    def clear_cache(self) -> None:
        self._cache.clear()

    @property
    def cache_size(self) -> int:
        return len(self._cache)


def cache_key(source: Mapping[str, Any], aggregate_spec: Mapping[str, Any] | None) -> str:
    """Stable key for a (source, aggregate) pair."""
    content = json.dumps(
        {"data": source, "aggregate": aggregate_spec or {}},
        sort_keys=True,
        default=str,
    )
    return hashlib.sha256(content.encode()).hexdigest()[:16]


def _check_arity(func: Callable[..., Any], count: int, label: str) -> None:
    """Check that ``func`` can be called with ``count`` positional arguments.

    Raises:
        ValueError: If it cannot.
    """
    if not callable(func):
        raise ValueError(f"{label} must be callable, got {type(func).__name__}")
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        # Builtins without introspectable signatures are accepted as is
        return
    try:
        signature.bind(*([None] * count))
    except TypeError as e:
        raise ValueError(f"{label} must accept {count} positional arguments: {e}") from None
