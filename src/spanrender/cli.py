"""spanrender command-line host."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from spanrender import __version__
from spanrender.config import (
    CharStyle,
    DisplayStyle,
    FileConfig,
    RenderConfig,
    find_config,
    load_config,
)
from spanrender.diagnostic import Severity
from spanrender.document import load_document
from spanrender.errors import DocumentError, SpanRenderError
from spanrender.files import SimpleFiles
from spanrender.renderer import render as render_diagnostic

logger = logging.getLogger(__name__)


def _setup_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level, format="[%(levelname)s] %(name)s: %(message)s", stream=sys.stderr,
    )


def _resolve_config(document: Path, config_file: str | None) -> FileConfig:
    """Use --config if given, else the nearest spanrender.toml, else defaults."""
    if config_file is not None:
        return load_config(Path(config_file))
    try:
        return load_config(find_config(document))
    except FileNotFoundError:
        return FileConfig()


def _echo_sink(err: bool, data: bytes) -> None:
    click.echo(data, nl=False, err=err)


@click.group()
@click.version_option(__version__, prog_name="spanrender")
@click.option("-v", "--verbose", count=True, help="Increase log verbosity (-v, -vv).")
def main(verbose: int) -> None:
    """Render compiler diagnostics as annotated source snippets."""
    _setup_logging(verbose)


@main.command()
@click.argument("document", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--style", type=click.Choice(["rich", "medium", "short"]), default=None,
    help="Display style (default: rich).",
)
@click.option(
    "--chars", type=click.Choice(["fancy", "ascii"]), default=None,
    help="Glyph set (default: fancy).",
)
@click.option("--tab-width", type=click.IntRange(min=0), default=None, help="Spaces per tab.")
@click.option("--color/--no-color", default=None, help="Emit ANSI colors.")
@click.option(
    "--config", "config_file", type=click.Path(exists=True, dir_okay=False), default=None,
    help="Read settings from this spanrender.toml.",
)
def render(
    document: str,
    style: str | None,
    chars: str | None,
    tab_width: int | None,
    color: bool | None,
    config_file: str | None,
) -> None:
    """Render every diagnostic in a JSON DOCUMENT."""
    path = Path(document)
    try:
        file_config = _resolve_config(path, config_file)
        files, diagnostics = load_document(path)
    except (DocumentError, OSError, ValueError) as e:
        click.echo(f"error: {e}", err=True)
        raise SystemExit(2)

    base = file_config.render
    config = RenderConfig(
        display_style=DisplayStyle.coerce(style) if style else base.display_style,
        char_style=CharStyle.coerce(chars) if chars else base.char_style,
        tab_width=base.tab_width if tab_width is None else tab_width,
    )
    use_color = file_config.color if color is None else color
    source_map = files.source_map()
    logger.info("rendering %d diagnostic(s) from %s", len(diagnostics), path)

    had_errors = False
    for diag in diagnostics:
        try:
            render_diagnostic(diag, source_map, config, use_color, _echo_sink, context=False)
        except SpanRenderError as e:
            click.echo(f"error: invalid diagnostic: {e}", err=True)
            raise SystemExit(2)
        if diag.severity >= Severity.ERROR:
            had_errors = True

    if had_errors:
        raise SystemExit(1)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def lines(file: str) -> None:
    """Show the line table of FILE: index, number and byte range per line."""
    files = SimpleFiles()
    file_id = files.add(file, Path(file).read_text(encoding="utf-8"))
    source_map = files.source_map()
    for index in range(files.get(file_id).line_count):
        start, end = source_map.line_range(file_id, index)
        number = source_map.line_number(file_id, index)
        click.echo(f"{index:>5} {number:>5}  {start}..{end}")
