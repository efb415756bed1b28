"""Standalone HTML pages for rendered documents.

Wraps a rendered container in a page carrying the grid stylesheet, so a
document rendered on the command line or in a notebook can be opened in a
browser as is.

Example:
    >>> from vizblocks import create_engine, Container
    >>> from vizblocks.export import PageConfig, write_page
    >>> container = Container(width=960)
    >>> result = await create_engine().render(blocks, container)
    >>> write_page(container, "report.html", PageConfig(title="Sales"))
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from jinja2 import Environment, select_autoescape

from vizblocks.base import RenderResult
from vizblocks.config import DEFAULT_PALETTE
from vizblocks.container import Container


PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{{ config.title }}</title>
<style>
body { font-family: {{ font_family }}; margin: 0; padding: 24px; background: {{ background }}; color: {{ foreground }}; }
.vb-page { max-width: {{ config.max_width }}px; margin: 0 auto; }
.vb-page h1 { font-size: 22px; margin: 0 0 16px; }
.vb-grid { display: grid; grid-template-columns: repeat(12, minmax(0, 1fr)); gap: {{ gutter }}px; }
.vb-grid-item { min-width: 0; }
.col-span-12 { grid-column: span 12 / span 12; }
@media (min-width: {{ breakpoint }}px) {
{%- for span in range(1, 13) %}
  .md\\:col-span-{{ span }} { grid-column: span {{ span }} / span {{ span }}; }
{%- endfor %}
}
.vb-error { border: 1px solid #f5c2c7; background: #f8d7da; color: #842029; padding: 12px; border-radius: 4px; font-size: 14px; }
.vb-params { display: flex; flex-wrap: wrap; gap: 12px; padding: 8px 0; }
.vb-param-group { display: flex; flex-direction: column; font-size: 13px; }
.vb-metric { padding: 16px; }
.vb-metric-value { font-size: 32px; font-weight: 600; }
.vb-metric-label { font-size: 13px; opacity: 0.75; }
.vb-metric-good { color: {{ up_color }}; }
.vb-metric-bad { color: {{ down_color }}; }
.vb-table { width: 100%; border-collapse: collapse; font-size: 13px; }
.vb-table th, .vb-table td { padding: 6px 10px; border-bottom: 1px solid {{ border }}; text-align: left; }
.vb-table .vb-num { text-align: right; font-variant-numeric: tabular-nums; }
.vb-table-note { font-size: 12px; opacity: 0.75; }
svg { display: block; max-width: 100%; height: auto; }
{{ config.custom_css | safe }}
</style>
</head>
<body>
<main class="vb-page">
{% if config.show_title %}<h1>{{ config.title }}</h1>{% endif %}
{{ body | safe }}
{% if config.show_errors and errors %}
<section class="vb-error-summary">
<h2>Errors</h2>
<ul>
{% for error in errors %}
<li>Block {{ error.block_index if error.block_index is not none else '-' }} ({{ error.phase.value }}): {{ error.kind }}: {{ error.message }}</li>
{% endfor %}
</ul>
</section>
{% endif %}
</main>
</body>
</html>
"""

THEMES = {
    "light": {"background": "#ffffff", "foreground": "#212529", "border": "#dee2e6"},
    "dark": {"background": "#1e1e1e", "foreground": "#e9ecef", "border": "#495057"},
}


@dataclass
class PageConfig:
    """Configuration for page export.

    Attributes:
        title: Page title.
        theme: Color theme ("light" or "dark").
        custom_css: Additional CSS appended to the stylesheet.
        max_width: Maximum page width in pixels.
        show_title: Whether to print the title above the document.
        show_errors: Whether to list captured errors below the document.
    """

    title: str = "vizblocks"
    theme: str = "light"
    custom_css: str = ""
    max_width: int = 1200
    show_title: bool = True
    show_errors: bool = False
    gutter: int = 16
    breakpoint: int = 768


_environment: Environment | None = None


def _get_environment() -> Environment:
    global _environment
    if _environment is None:
        _environment = Environment(autoescape=select_autoescape(default=True, default_for_string=True))
    return _environment


def generate_page(
    content: Container | RenderResult,
    config: PageConfig | None = None,
) -> str:
    """Render a container (or a render result's container) as an HTML page.

    Raises:
        ValueError: If the theme is unknown.
    """
    config = config or PageConfig()
    if config.theme not in THEMES:
        raise ValueError(f"Unknown theme '{config.theme}'. Available: {list(THEMES)}")

    if isinstance(content, RenderResult):
        container, errors = content.handle, content.errors
    else:
        container, errors = content, []

    template = _get_environment().from_string(PAGE_TEMPLATE)
    return template.render(
        config=config,
        body=container.to_html(),
        errors=errors,
        gutter=config.gutter,
        breakpoint=config.breakpoint,
        font_family="system-ui, -apple-system, Roboto, sans-serif",
        up_color=DEFAULT_PALETTE[2],
        down_color=DEFAULT_PALETTE[3],
        **THEMES[config.theme],
    )


def write_page(
    content: Container | RenderResult,
    output_path: str | Path,
    config: PageConfig | None = None,
) -> Path:
    """Generate a page and write it to ``output_path``.

    Returns:
        Path to the written file.
    """
    page = generate_page(content, config)
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(page, encoding="utf-8")
    return output_path
