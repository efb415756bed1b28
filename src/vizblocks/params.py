"""Parameter reference resolution.

A chart attribute whose whole value is a reference is replaced by the
current parameter value:

- ``"$filters.region"``: named parameter of the ``filters`` params block
- ``"$top_n"``: chart-level parameter, falling back to the default of an
  inline ``params`` definition on the chart itself

References embedded in longer strings are left untouched, as are
references without a value (those are logged).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

logger = logging.getLogger(__name__)

PARAM_REFERENCE = re.compile(r"^\$([A-Za-z0-9_]+(?:\.[A-Za-z0-9_]+)*)$")

_MISSING = object()


@dataclass
class ParamValidation:
    """Outcome of ``validate_param_references``."""

    missing: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.missing


def parse_reference(value: Any) -> str | None:
    """Return the referenced parameter path, or None if ``value`` is not a reference."""
    if not isinstance(value, str):
        return None
    match = PARAM_REFERENCE.match(value)
    return match.group(1) if match else None


def extract_param_references(spec: Any) -> set[str]:
    """Collect every parameter path referenced anywhere in ``spec``.

    Example:
        >>> sorted(extract_param_references({"aggregate": {"limit": "$top_n"},
        ...                                  "title": "$filters.region"}))
        ['filters.region', 'top_n']
    """
    references: set[str] = set()
    for value in _walk(spec):
        path = parse_reference(value)
        if path:
            references.add(path)
    return references


def resolve_param_references(
    spec: Any,
    param_values: Mapping[str, Any] | None = None,
    chart_params: Iterable[Mapping[str, Any]] | None = None,
) -> Any:
    """Return a copy of ``spec`` with parameter references substituted.

    Args:
        spec: Chart attributes (nested mappings and lists).
        param_values: Current values keyed by ``block.param`` or bare ``param``.
        chart_params: Inline parameter definitions used as a fallback for
            chart-level references.

    Returns:
        The resolved structure. The input is not modified.
    """
    values = dict(param_values or {})
    defaults = _chart_defaults(chart_params)

    def lookup(path: str) -> Any:
        value = values.get(path, _MISSING)
        if value is _MISSING and "." not in path:
            value = defaults.get(path, _MISSING)
        if value is _MISSING:
            kind = "Named" if "." in path else "Chart-level"
            logger.warning("%s parameter reference not found: $%s", kind, path)
        return value

    def resolve(node: Any) -> Any:
        if isinstance(node, Mapping):
            return {key: resolve(value) for key, value in node.items()}
        if isinstance(node, list):
            return [resolve(item) for item in node]
        path = parse_reference(node)
        if path is None:
            return node
        value = lookup(path)
        return node if value is _MISSING else value

    return resolve(spec)


def validate_param_references(
    spec: Any,
    param_values: Mapping[str, Any] | None = None,
    chart_params: Iterable[Mapping[str, Any]] | None = None,
) -> ParamValidation:
    """Check that every reference in ``spec`` has a value."""
    values = dict(param_values or {})
    defaults = _chart_defaults(chart_params)
    result = ParamValidation()
    for path in sorted(extract_param_references(spec)):
        if path in values:
            continue
        if "." not in path and defaults.get(path) is not None:
            continue
        result.missing.append(path)
    return result


def _chart_defaults(chart_params: Iterable[Mapping[str, Any]] | None) -> dict[str, Any]:
    if not chart_params:
        return {}
    return {
        p["id"]: p.get("default")
        for p in chart_params
        if isinstance(p, Mapping) and isinstance(p.get("id"), str) and "default" in p
    }


def _walk(node: Any) -> Iterable[Any]:
    if isinstance(node, Mapping):
        for value in node.values():
            yield from _walk(value)
    elif isinstance(node, list):
        for item in node:
            yield from _walk(item)
    else:
        yield node
