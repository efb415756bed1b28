"""Per-document registry for named blocks and parameter bindings.

The registry stores the non-visual state of one document:
- Sources: named data definitions
- Styles: named palettes and sizing
- Configs: document-level defaults, merged in registration order
- Params: parameter bindings with synchronous subscribers

A registry is created by the engine for a single document render and
discarded with it; it is never shared between documents.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from vizblocks.base import BlockKind
from vizblocks.config import deep_merge
from vizblocks.exceptions import SpecError

logger = logging.getLogger(__name__)


ParamCallback = Callable[[str, Any], None]

STYLE_PROPERTIES = ("colors", "background", "fonts", "grid", "padding", "width", "height")
PARAM_TYPES = ("select", "multiselect", "number", "number_range", "date", "daterange", "text")
# Prefix of the keys given to unnamed configs; block names may not use it
RESERVED_PREFIX = "@"


class RegistryKeyError(KeyError):
    """Raised when a (kind, name) pair is not registered."""

    def __init__(self, kind: BlockKind | str, name: str, available: list[str]):
        self.kind = BlockKind(kind)
        self.name = name
        self.available = available
        super().__init__(
            f"{self.kind.value.title()} '{name}' not found. Available: {available}"
        )

    def __str__(self) -> str:
        return str(self.args[0])


@dataclass
class ParamBinding:
    """Current value of one parameter plus its subscribers.

    Attributes:
        name: Dotted parameter name (``<params block>.<param id>``).
        value: Current value.
        definition: The parameter definition from its params block.
        subscribers: Callbacks invoked with ``(name, value)`` on change.
    """

    name: str
    value: Any = None
    definition: dict[str, Any] | None = None
    subscribers: list[ParamCallback] = field(default_factory=list)

    @property
    def declared(self) -> bool:
        return self.definition is not None


class Registry:
    """Key/value store for one document's named blocks and params.

    Example:
        registry = Registry()
        registry.register("source", "sales", {"rows": [{"month": "Jan", "revenue": 10}]})
        registry.get("source", "sales")["rows"]

        registry.register("params", "filters", {"params": [
            {"id": "region", "type": "select", "options": ["US", "EU"], "default": "US"},
        ]})
        registry.subscribe("filters.region", lambda name, value: print(name, value))
        registry.set_param("filters.region", "EU")
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._entries: dict[BlockKind, dict[str, Any]] = {kind: {} for kind in BlockKind}
        self._bindings: dict[str, ParamBinding] = {}
        self._config_counter = 0

    # Registration

    def register(self, kind: BlockKind | str, name: str | None, value: Mapping[str, Any]) -> str:
        """Register a named entry, overwriting any previous one.

        Validation happens before anything is written, so a rejected
        registration leaves the registry untouched.

        Args:
            kind: Block kind.
            name: Entry name; optional for configs only.
            value: Entry attributes.

        Returns:
            The name the entry was stored under.

        Raises:
            SpecError: If the name or attributes are malformed.
        """
        kind = BlockKind(kind)
        if kind == BlockKind.CHART:
            raise SpecError("Chart blocks are rendered, not registered")
        if not isinstance(value, Mapping):
            raise SpecError(f"{kind.value.title()} attributes must be a mapping")

        if kind == BlockKind.PARAMS:
            return self.register_params(name, value)

        if kind == BlockKind.CONFIG and not name:
            name = f"{RESERVED_PREFIX}config_{self._config_counter}"
        else:
            self._check_name(kind, name)

        if kind == BlockKind.SOURCE:
            self._validate_source(name, value)
        elif kind == BlockKind.STYLE:
            self._validate_style(name, value)

        if kind == BlockKind.CONFIG:
            self._config_counter += 1

        entries = self._entries[kind]
        if name in entries:
            logger.debug("Overwriting %s '%s' (last write wins)", kind.value, name)
            # Re-registration moves the entry to the end of the merge order
            del entries[name]
        entries[name] = copy.deepcopy(dict(value))
        return name

    def register_params(self, name: str | None, definition: Mapping[str, Any]) -> str:
        """Register a params block and publish its default values.

        Existing subscribers of the block's parameters are kept, so charts
        subscribed before a re-registration still receive updates.

        Raises:
            SpecError: If the definition is malformed.
        """
        self._check_name(BlockKind.PARAMS, name)
        params = self._validate_params(name, definition)

        stale = [
            key for key, binding in self._bindings.items()
            if key.startswith(f"{name}.") and binding.declared
        ]
        for key in stale:
            self._bindings[key].definition = None

        for param in params:
            key = f"{name}.{param['id']}"
            binding = self._bindings.get(key)
            if binding is None:
                binding = self._bindings[key] = ParamBinding(name=key)
            binding.definition = dict(param)
            binding.value = copy.deepcopy(param.get("default"))

        if name in self._entries[BlockKind.PARAMS]:
            logger.debug("Overwriting params '%s' (last write wins)", name)
        self._entries[BlockKind.PARAMS][name] = copy.deepcopy(dict(definition))
        return name

    # Lookup

    def get(self, kind: BlockKind | str, name: str) -> Any:
        """Get a registered entry.

        Raises:
            RegistryKeyError: If no entry exists under ``(kind, name)``.
        """
        kind = BlockKind(kind)
        entries = self._entries[kind]
        if not isinstance(name, str) or name not in entries:
            raise RegistryKeyError(kind, str(name), list(entries.keys()))
        return entries[name]

    def find(self, kind: BlockKind | str, name: str) -> Any | None:
        """Get a registered entry or None."""
        entries = self._entries[BlockKind(kind)]
        if not isinstance(name, str):
            return None
        return entries.get(name)

    def has(self, kind: BlockKind | str, name: str) -> bool:
        return isinstance(name, str) and name in self._entries[BlockKind(kind)]

    def names(self, kind: BlockKind | str) -> list[str]:
        """List registered names of a kind, in registration order."""
        return list(self._entries[BlockKind(kind)].keys())

    def merged_config(self) -> dict[str, Any]:
        """Deep-merge all config entries in registration order."""
        merged: dict[str, Any] = {}
        for config in self._entries[BlockKind.CONFIG].values():
            merged = deep_merge(merged, config)
        return merged

    # Parameters

    def subscribe(self, param_name: str, callback: ParamCallback) -> None:
        """Subscribe to changes of a parameter.

        Subscribing to a parameter that is not declared yet is allowed; the
        callback fires once a params block publishes it and it changes.
        """
        binding = self._bindings.get(param_name)
        if binding is None:
            binding = self._bindings[param_name] = ParamBinding(name=param_name)
        if callback not in binding.subscribers:
            binding.subscribers.append(callback)
            logger.debug(
                "Subscribed to '%s' (%d subscribers)", param_name, len(binding.subscribers)
            )

    def unsubscribe(self, param_name: str, callback: ParamCallback) -> None:
        """Remove a subscriber. Unknown subscriptions are ignored."""
        binding = self._bindings.get(param_name)
        if binding is None:
            return
        if callback in binding.subscribers:
            binding.subscribers.remove(callback)
        if not binding.subscribers and not binding.declared:
            del self._bindings[param_name]

    def set_param(self, param_name: str, value: Any) -> bool:
        """Update a parameter, then notify its subscribers in order.

        Subscribers are not notified when the value is unchanged, which
        breaks update loops between controls and charts.

        Returns:
            True if the value changed.

        Raises:
            RegistryKeyError: If no params block declares the parameter.
        """
        binding = self._bindings.get(param_name)
        if binding is None or not binding.declared:
            declared = [k for k, b in self._bindings.items() if b.declared]
            raise RegistryKeyError(BlockKind.PARAMS, param_name, declared)

        if binding.value == value:
            return False
        binding.value = copy.deepcopy(value)

        for callback in list(binding.subscribers):
            try:
                callback(param_name, binding.value)
            except Exception:
                logger.exception("Subscriber of '%s' failed", param_name)
        return True

    def get_param(self, param_name: str) -> Any:
        """Get the current value of a declared parameter.

        Raises:
            RegistryKeyError: If the parameter is not declared.
        """
        binding = self._bindings.get(param_name)
        if binding is None or not binding.declared:
            declared = [k for k, b in self._bindings.items() if b.declared]
            raise RegistryKeyError(BlockKind.PARAMS, param_name, declared)
        return binding.value

    def param_values(self, scope: str | None = None) -> dict[str, Any]:
        """Current values of declared parameters.

        Args:
            scope: If given, only the parameters of that params block,
                keyed by bare param id.

        Returns:
            Mapping of dotted names (or ids when scoped) to values.
        """
        if scope is None:
            return {k: b.value for k, b in self._bindings.items() if b.declared}
        prefix = f"{scope}."
        return {
            k[len(prefix):]: b.value
            for k, b in self._bindings.items()
            if b.declared and k.startswith(prefix)
        }

    def subscriber_count(self, param_name: str) -> int:
        binding = self._bindings.get(param_name)
        return len(binding.subscribers) if binding else 0

    # Utility methods

    def clear(self) -> None:
        """Drop all entries, bindings and subscribers."""
        for entries in self._entries.values():
            entries.clear()
        self._bindings.clear()
        self._config_counter = 0

    def stats(self) -> dict[str, int]:
        """Get registration statistics."""
        return {
            "sources": len(self._entries[BlockKind.SOURCE]),
            "styles": len(self._entries[BlockKind.STYLE]),
            "configs": len(self._entries[BlockKind.CONFIG]),
            "params": len(self._entries[BlockKind.PARAMS]),
        }

    # Validation

    @staticmethod
    def _check_name(kind: BlockKind, name: Any) -> None:
        if not name or not isinstance(name, str):
            raise SpecError(f"{kind.value.title()} name must be a non-empty string")
        if name.startswith(RESERVED_PREFIX):
            raise SpecError(f"{kind.value.title()} name '{name}' may not start with '{RESERVED_PREFIX}'")

    @staticmethod
    def _validate_source(name: str, value: Mapping[str, Any]) -> None:
        provider = value.get("provider", "inline")
        if not isinstance(provider, str) or not provider:
            raise SpecError(f"Source '{name}' provider must be a non-empty string")
        if provider.lower() != "inline":
            return
        rows = value.get("rows", value.get("data"))
        if not isinstance(rows, list):
            raise SpecError(f"Source '{name}' with provider 'inline' must have 'rows' or 'data' (list)")
        for i, row in enumerate(rows):
            if not isinstance(row, Mapping):
                raise SpecError(f"Source '{name}' row {i} must be a mapping")

    @staticmethod
    def _validate_style(name: str, value: Mapping[str, Any]) -> None:
        if not any(prop in value for prop in STYLE_PROPERTIES):
            raise SpecError(
                f"Style '{name}' must define at least one style property: {', '.join(STYLE_PROPERTIES)}"
            )
        colors = value.get("colors")
        if colors is not None and not isinstance(colors, list):
            raise SpecError(f"Style '{name}' colors must be a list of color strings")

    @staticmethod
    def _validate_params(name: str, definition: Mapping[str, Any]) -> list[dict[str, Any]]:
        params = definition.get("params")
        if not isinstance(params, list) or not params:
            raise SpecError(f"Params '{name}' must have a non-empty 'params' list")

        seen = set()
        for i, param in enumerate(params):
            if not isinstance(param, Mapping):
                raise SpecError(f"Parameter at index {i} of '{name}' must be a mapping")
            param_id = param.get("id")
            if not param_id or not isinstance(param_id, str):
                raise SpecError(f"Parameter at index {i} of '{name}' must have an 'id' (string)")
            if param_id in seen:
                raise SpecError(f"Parameter '{param_id}' is declared twice in '{name}'")
            seen.add(param_id)
            param_type = param.get("type")
            if param_type not in PARAM_TYPES:
                raise SpecError(
                    f"Parameter '{param_id}' has invalid type {param_type!r}. "
                    f"Must be one of: {', '.join(PARAM_TYPES)}"
                )
            if param_type in ("select", "multiselect") and not isinstance(param.get("options"), list):
                raise SpecError(f"Parameter '{param_id}' with type '{param_type}' must have an 'options' list")
        return [dict(p) for p in params]
