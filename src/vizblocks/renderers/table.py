"""Table renderer.

Visualize attributes:
    columns: Fields to show, in order. Each entry is a field name or a
        mapping with ``field`` and optional ``label`` and ``format``
        (``currency``, ``percent``, ``integer`` or a Python format spec).
        Defaults to every column of the data.
    maxRows: Show at most this many rows.
"""

from __future__ import annotations

import html
from typing import TYPE_CHECKING, Any, Mapping

import polars as pl

from vizblocks.exceptions import MissingRequiredConfig
from vizblocks.renderers.base import format_value, render_title
from vizblocks.renderers.metric import format_metric

if TYPE_CHECKING:
    from vizblocks.container import Container


def render_table(container: "Container", data: pl.DataFrame, config: dict[str, Any]) -> None:
    """Render the chart data as an HTML table."""
    container.clear()
    visualize = config.get("visualize") or {}
    columns = _columns(visualize.get("columns"), data, config)
    title = render_title(config.get("title", ""))

    max_rows = visualize.get("maxRows")
    if isinstance(max_rows, int) and not isinstance(max_rows, bool) and max_rows >= 0:
        rows = data.head(max_rows)
    else:
        rows = data

    # Numeric columns are right-aligned
    align = {
        c["field"]: ' class="vb-num"' if data.schema[c["field"]].is_numeric() else ""
        for c in columns
    }
    header = "".join(f'<th{align[c["field"]]}>{html.escape(c["label"])}</th>' for c in columns)
    body = []
    for record in rows.iter_rows(named=True):
        cells = []
        for c in columns:
            value = record[c["field"]]
            if value is None:
                text = ""
            elif c["format"]:
                text = format_metric(value, c["format"])
            else:
                text = format_value(value)
            cells.append(f'<td{align[c["field"]]}>{html.escape(text)}</td>')
        body.append(f"<tr>{''.join(cells)}</tr>")

    footer = ""
    if rows.height < data.height:
        footer = f'<p class="vb-table-note">Showing {rows.height} of {data.height} rows</p>'
    container.append_html(
        f'{title}<table class="vb-table"><thead><tr>{header}</tr></thead>'
        f'<tbody>{"".join(body)}</tbody></table>{footer}'
    )


def _columns(spec: Any, data: pl.DataFrame, config: Mapping[str, Any]) -> list[dict[str, Any]]:
    if spec is None:
        return [{"field": c, "label": c, "format": None} for c in data.columns]
    entries = spec if isinstance(spec, list) else [spec]
    columns = []
    for entry in entries:
        if isinstance(entry, str):
            entry = {"field": entry}
        field = entry.get("field") if isinstance(entry, Mapping) else None
        if not isinstance(field, str) or field not in data.columns:
            raise MissingRequiredConfig(
                f"Table column {field or entry!r} not found in data. Available: {data.columns}",
                attribute="columns",
                chart_type=config.get("chart_type"),
                block_index=config.get("block_index"),
            )
        columns.append({"field": field, "label": str(entry.get("label") or field), "format": entry.get("format")})
    return columns
