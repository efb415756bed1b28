"""Engine configuration for vizblocks.

Configuration comes from three layers, lowest precedence first:

1. ``SYSTEM_DEFAULTS``: the built-in theme
2. ``EngineSettings``: engine-wide settings (code, environment or file)
3. ``config`` blocks inside a document, deep-merged in document order

Usage:
    >>> settings = EngineSettings.from_env()
    >>> settings = EngineSettings.from_file("vizblocks.yaml")
    >>> theme = deep_merge(SYSTEM_DEFAULTS["theme"], {"colors": ["#000"]})
"""

from __future__ import annotations

import copy
import json
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Mapping

import yaml


ENV_PREFIX = "VIZBLOCKS_"

DEFAULT_PALETTE: tuple[str, ...] = (
    "#2E7D9A", "#D4A445", "#4A7C59", "#D66B5B", "#8B6BA8", "#9BB85A",
    "#A85A6B", "#5A6BA8", "#B87D5A", "#5A9B9B", "#759B75", "#A8758B",
)

SYSTEM_DEFAULTS: dict[str, Any] = {
    "theme": {
        "colors": list(DEFAULT_PALETTE),
        "background": "#FFFFFF",
        "fonts": {
            "title": {"size": 16, "weight": 600, "family": "system-ui, sans-serif", "color": "#374151"},
            "axis": {"size": 12, "family": "system-ui, sans-serif", "color": "#6B7280"},
            "legend": {"size": 12, "family": "system-ui, sans-serif", "color": "#374151"},
        },
        "grid": {"color": "#E5E7EB", "opacity": 0.5},
        "padding": {"top": 20, "right": 20, "bottom": 60, "left": 60},
    }
}


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any] | None) -> dict[str, Any]:
    """Deep merge two mappings.

    Nested mappings are merged recursively, lists and scalars in ``override``
    replace the value in ``base``. Neither input is mutated.
    """
    result = copy.deepcopy(dict(base))
    if not override:
        return result
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(result.get(key), Mapping):
            result[key] = deep_merge(result[key], value)
        elif isinstance(value, list):
            result[key] = list(value)
        else:
            result[key] = copy.deepcopy(value)
    return result


@dataclass(frozen=True)
class EngineSettings:
    """Engine-wide settings.

    Attributes:
        default_height: Height used when neither the chart nor its renderer
            declares one.
        fallback_height: Height returned when dimension estimation fails.
        title_height: Extra height reserved for a chart title.
        default_container_width: Width assumed when a container has none.
        mobile_breakpoint: Viewport width below which every grid item
            spans the full row.
        grid_gutter: Horizontal gap between grid items in pixels.
        debounce_delay: Seconds to wait after the last edit before
            re-rendering.
        concurrent_charts: Render chart blocks concurrently after pass 1.
        default_palette: Palette used when no style or config supplies one.
    """

    default_height: int = 400
    fallback_height: int = 400
    title_height: int = 32
    default_container_width: int = 600
    mobile_breakpoint: int = 768
    grid_gutter: int = 16
    debounce_delay: float = 0.25
    concurrent_charts: bool = False
    default_palette: tuple[str, ...] = field(default=DEFAULT_PALETTE)

    def with_overrides(self, **overrides: Any) -> "EngineSettings":
        """Create new settings with some values replaced."""
        return replace(self, **overrides)

    def theme_defaults(self) -> dict[str, Any]:
        """System theme with this instance's palette applied."""
        return deep_merge(SYSTEM_DEFAULTS["theme"], {"colors": list(self.default_palette)})

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EngineSettings":
        """Build settings from a mapping, ignoring unknown keys.

        Raises:
            ValueError: If a value cannot be converted to the field type.
        """
        known = {f.name: f for f in fields(cls)}
        values: dict[str, Any] = {}
        for key, raw in data.items():
            if key not in known:
                continue
            values[key] = _coerce(key, raw, known[key].default)
        return cls(**values)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "EngineSettings":
        """Build settings from ``VIZBLOCKS_*`` environment variables.

        Example:
            VIZBLOCKS_DEBOUNCE_DELAY=0.5 VIZBLOCKS_CONCURRENT_CHARTS=true
        """
        env = os.environ if environ is None else environ
        data = {
            key[len(ENV_PREFIX):].lower(): value
            for key, value in env.items()
            if key.startswith(ENV_PREFIX)
        }
        return cls.from_dict(data)

    @classmethod
    def from_file(cls, path: str | Path) -> "EngineSettings":
        """Load settings from a YAML or JSON file.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the file does not contain a mapping.
        """
        p = Path(path)
        text = p.read_text(encoding="utf-8")
        if p.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise ValueError(f"Settings file {p} must contain a mapping")
        return cls.from_dict(data.get("vizblocks", data))

    def to_dict(self) -> dict[str, Any]:
        return {
            f.name: list(getattr(self, f.name)) if f.name == "default_palette" else getattr(self, f.name)
            for f in fields(self)
        }


def _coerce(key: str, raw: Any, default: Any) -> Any:
    """Convert a raw (often string) value to the type of ``default``."""
    try:
        if isinstance(default, bool):
            if isinstance(raw, str):
                return raw.strip().lower() in ("1", "true", "yes", "on")
            return bool(raw)
        if isinstance(default, int):
            return int(raw)
        if isinstance(default, float):
            return float(raw)
        if isinstance(default, tuple):
            if isinstance(raw, str):
                return tuple(c.strip() for c in raw.split(",") if c.strip())
            return tuple(raw)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid value for setting '{key}': {raw!r}") from e
    return raw
