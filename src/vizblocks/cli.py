"""Command-line interface for vizblocks.

Commands:
    vizblocks render: Render a document to a standalone HTML page
    vizblocks dimensions: Show the expected dimensions of each chart
    vizblocks renderers: List the available chart types
"""

from __future__ import annotations

import asyncio
import functools
import logging
from pathlib import Path
from typing import Annotated, Any, Callable, Optional, TypeVar

import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from vizblocks.base import BlockKind, BlockStatus
from vizblocks.classifier import BlockClassifier
from vizblocks.config import EngineSettings
from vizblocks.container import Container
from vizblocks.engine import create_engine, load_blocks
from vizblocks.exceptions import VizBlocksError
from vizblocks.export import PageConfig, write_page

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

app = typer.Typer(
    name="vizblocks",
    help="Render documents of declarative visualization blocks",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()


# =============================================================================
# Type Aliases
# =============================================================================

DocumentArg = Annotated[Path, typer.Argument(help="YAML or JSON document of blocks")]

ConfigOpt = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Engine settings file (YAML or JSON)"),
]

WidthOpt = Annotated[
    Optional[float],
    typer.Option("--width", "-w", help="Container width in pixels"),
]

VerboseOpt = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Enable verbose output"),
]


# =============================================================================
# Helpers
# =============================================================================


class CLIError(Exception):
    """Error reported to the user with a non-zero exit code."""

    def __init__(self, message: str, code: int = 1, hint: str | None = None):
        self.message = message
        self.code = code
        self.hint = hint
        super().__init__(message)


def error_boundary(func: F) -> F:
    """Convert exceptions raised by a command into CLI errors."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except typer.Exit:
            raise
        except CLIError as e:
            typer.echo(typer.style(f"Error: {e.message}", fg="red"), err=True)
            if e.hint:
                typer.echo(typer.style(f"Hint: {e.hint}", fg="yellow"), err=True)
            raise typer.Exit(e.code)
        except VizBlocksError as e:
            typer.echo(typer.style(f"Error: {e.kind}: {e.message}", fg="red"), err=True)
            raise typer.Exit(1)
        except Exception as e:
            logger.exception("Unexpected error")
            typer.echo(typer.style(f"Error: {e}", fg="red"), err=True)
            raise typer.Exit(1)

    return wrapper  # type: ignore


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def load_settings(config_file: Path | None) -> EngineSettings:
    if config_file is None:
        return EngineSettings.from_env()
    if not config_file.exists():
        raise CLIError(f"Config file not found: {config_file}", code=2)
    try:
        return EngineSettings.from_file(config_file)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise CLIError(f"Invalid config file {config_file}: {e}", code=2) from e


def read_document(path: Path) -> list[Any]:
    """Read the blocks of a YAML or JSON document file."""
    if not path.exists():
        raise CLIError(f"File not found: {path}", code=2)
    return load_blocks(path.read_text(encoding="utf-8"))


def parse_param(assignment: str) -> tuple[str, Any]:
    """Parse ``scope.id=value``; the value is read as YAML."""
    name, sep, raw = assignment.partition("=")
    if not sep or not name.strip():
        raise CLIError(f"Invalid parameter '{assignment}'", hint="Use --param scope.id=value")
    return name.strip(), yaml.safe_load(raw) if raw else ""


# =============================================================================
# Commands
# =============================================================================


@app.command(name="render")
@error_boundary
def render_cmd(
    document: DocumentArg,
    output: Annotated[
        Path,
        typer.Option("--output", "-o", help="Output HTML file path"),
    ] = Path("vizblocks.html"),
    title: Annotated[
        Optional[str],
        typer.Option("--title", "-t", help="Page title (defaults to the file name)"),
    ] = None,
    params: Annotated[
        Optional[list[str]],
        typer.Option("--param", "-p", help="Set a parameter after rendering (scope.id=value)"),
    ] = None,
    theme: Annotated[
        str,
        typer.Option("--theme", help="Page theme (light, dark)"),
    ] = "light",
    width: WidthOpt = None,
    config_file: ConfigOpt = None,
    strict: Annotated[
        bool,
        typer.Option("--strict", help="Exit with code 1 if any block failed"),
    ] = False,
    verbose: VerboseOpt = False,
) -> None:
    """Render a document to a standalone HTML page."""
    setup_logging(verbose)
    settings = load_settings(config_file)
    blocks = read_document(document)
    assignments = [parse_param(p) for p in params or []]

    engine = create_engine(settings)
    container = Container(width=width or settings.default_container_width)

    async def _render():
        rendered = await engine.render_document(blocks, container)
        try:
            for name, value in assignments:
                await rendered.set_param(name, value)
        finally:
            rendered.close()
        return rendered.result

    try:
        result = asyncio.run(_render())
    except KeyError as e:
        raise CLIError(str(e.args[0]) if e.args else str(e), code=2) from e

    page_config = PageConfig(
        title=title or document.stem,
        theme=theme,
        show_errors=True,
        gutter=settings.grid_gutter,
        breakpoint=settings.mobile_breakpoint,
    )
    path = write_page(result, output, page_config)

    rendered = sum(1 for b in result.blocks if b.status == BlockStatus.RENDERED)
    console.print(
        f"[green]Rendered[/green] {rendered} block(s) to {path} "
        f"in {result.render_time_ms:.1f}ms"
    )
    for error in result.errors:
        block = "-" if error.block_index is None else error.block_index
        console.print(f"[red]Block {block}[/red] ({error.phase.value}) {error.kind}: {escape(error.message)}")

    if strict and result.errors:
        raise typer.Exit(1)


@app.command(name="dimensions")
@error_boundary
def dimensions_cmd(
    document: DocumentArg,
    width: WidthOpt = None,
    config_file: ConfigOpt = None,
    verbose: VerboseOpt = False,
) -> None:
    """Show the expected dimensions of each chart in a document."""
    setup_logging(verbose)
    settings = load_settings(config_file)
    engine = create_engine(settings)
    blocks = BlockClassifier().classify(read_document(document))

    table = Table(title=f"Chart dimensions: {document.name}")
    table.add_column("Block", justify="right")
    table.add_column("Type")
    table.add_column("Title")
    table.add_column("Width", justify="right")
    table.add_column("Height", justify="right")

    for block in blocks:
        if not block.is_valid or block.kind != BlockKind.CHART:
            continue
        visualize = block.attributes.get("visualize")
        chart_type = visualize.get("type") if isinstance(visualize, dict) else None
        title = block.attributes.get("title") or (visualize or {}).get("title") or ""
        dims = engine.get_expected_dimensions(block.attributes, width)
        table.add_row(
            str(block.index),
            str(chart_type or "-"),
            str(title),
            "auto" if dims.width is None else f"{dims.width:g}",
            f"{dims.height:g}",
        )

    console.print(table)


@app.command(name="renderers")
def renderers_cmd() -> None:
    """List the available chart types."""
    engine = create_engine()
    table = Table(title="Chart renderers")
    table.add_column("Type")
    table.add_column("Default height", justify="right")
    for type_name in engine.renderers.list_types():
        dims = engine.renderers.default_dimensions(type_name, None, None)
        table.add_row(type_name, "-" if dims is None else f"{dims.height:g}")
    console.print(table)


if __name__ == "__main__":
    app()
