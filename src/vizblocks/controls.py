"""Parameter control surface.

Renders the interactive controls of a ``params`` block as an HTML form
fragment. Each control carries ``data-param`` with the dotted parameter
name so a host script can route changes back to
``RenderedDocument.set_param``.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from jinja2 import DictLoader, Environment, select_autoescape

from vizblocks.container import Container

logger = logging.getLogger(__name__)


CONTROL_TEMPLATES = {
    "params.html": """\
<form class="vb-params" data-params="{{ scope }}">
{%- for param in params %}
<div class="vb-param-group">{% include param.template %}</div>
{%- endfor %}
</form>""",
    "select.html": """\
<label class="vb-param-label" for="{{ param.dom_id }}">{{ param.label }}</label>
<select id="{{ param.dom_id }}" class="vb-param-select" data-param="{{ param.name }}"{% if param.multiple %} multiple{% endif %}>
{%- for option in param.options %}
<option value="{{ option }}"{% if option in param.selected %} selected{% endif %}>{{ option }}</option>
{%- endfor %}
</select>""",
    "input.html": """\
<label class="vb-param-label" for="{{ param.dom_id }}">{{ param.label }}</label>
<input id="{{ param.dom_id }}" class="vb-param-input" type="{{ param.input_type }}" data-param="{{ param.name }}" value="{{ '' if param.value is none else param.value }}"{% if param.placeholder %} placeholder="{{ param.placeholder }}"{% endif %}>""",
    "range.html": """\
<span class="vb-param-label">{{ param.label }}</span>
<div class="vb-param-range" data-param="{{ param.name }}">
<input class="vb-param-input" type="{{ param.input_type }}" data-bound="start" value="{{ '' if param.start is none else param.start }}">
<span class="vb-param-range-separator">to</span>
<input class="vb-param-input" type="{{ param.input_type }}" data-bound="end" value="{{ '' if param.end is none else param.end }}">
</div>""",
}

_INPUT_TYPES = {"number": "number", "date": "date", "text": "text"}
_RANGE_TYPES = {"number_range": "number", "daterange": "date"}

_env: Environment | None = None


def get_environment() -> Environment:
    """Get the Jinja2 environment holding the control templates."""
    global _env
    if _env is None:
        _env = Environment(
            loader=DictLoader(CONTROL_TEMPLATES),
            autoescape=select_autoescape(default=True, default_for_string=True),
        )
    return _env


def render_params(
    scope: str,
    definitions: Sequence[Mapping[str, Any]],
    values: Mapping[str, Any],
    container: Container,
) -> None:
    """Draw the controls of a params block into ``container``.

    Args:
        scope: Name of the params block.
        definitions: Parameter definitions, in declaration order.
        values: Current values keyed by parameter id.
        container: Target container; cleared first.
    """
    controls = []
    for definition in definitions:
        control = _build_control(scope, definition, values.get(definition["id"]))
        if control is None:
            logger.warning("Unknown parameter type: %s", definition.get("type"))
            continue
        controls.append(control)

    template = get_environment().get_template("params.html")
    container.replace_with_html(template.render(scope=scope, params=controls))
    container.add_class("vb-params-container")


def _build_control(scope: str, definition: Mapping[str, Any], value: Any) -> dict[str, Any] | None:
    param_id = definition["id"]
    param_type = definition.get("type")
    name = f"{scope}.{param_id}"
    control: dict[str, Any] = {
        "name": name,
        "dom_id": f"vb-param-{scope}-{param_id}",
        "label": definition.get("label") or param_id,
        "placeholder": definition.get("placeholder"),
    }

    if param_type in ("select", "multiselect"):
        if param_type == "multiselect":
            selected = value if isinstance(value, list) else ([value] if value is not None else [])
        else:
            selected = [value] if value is not None else []
        control.update(
            template="select.html",
            multiple=param_type == "multiselect",
            options=list(definition.get("options") or []),
            selected=selected,
        )
    elif param_type in _INPUT_TYPES:
        control.update(template="input.html", input_type=_INPUT_TYPES[param_type], value=value)
    elif param_type in _RANGE_TYPES:
        start, end = _range_bounds(value)
        control.update(template="range.html", input_type=_RANGE_TYPES[param_type], start=start, end=end)
    else:
        return None
    return control


def _range_bounds(value: Any) -> tuple[Any, Any]:
    if isinstance(value, Mapping):
        return value.get("start", value.get("min")), value.get("end", value.get("max"))
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return value[0], value[1]
    return None, None
