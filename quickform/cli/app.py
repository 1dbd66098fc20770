"""Main CLI application."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Optional

import typer
from typing_extensions import Annotated

from ..core.errors import QuickformError
from ..core.models import RunReport
from ..pipeline.registry import OperationRegistry
from ..settings import get_settings
from .parsers import load_registry, parse_context_file

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="quickform",
    help="Render code-generation pipelines into an output directory.",
    no_args_is_help=True,
)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )


def _execute(registry: OperationRegistry, output: Path) -> RunReport:
    try:
        report = asyncio.run(registry.run(output))
    except QuickformError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e

    logger.debug(f"Completed: {report.exported} file(s) exported")
    typer.echo(f"Wrote {report.exported} file(s) to {report.output_dir}")
    return report


@app.command()
def run(
    target: Annotated[
        str,
        typer.Argument(
            help="Registry to run, as MODULE:ATTRIBUTE (a registry or a factory returning one).",
            metavar="MODULE:ATTRIBUTE",
        ),
    ],
    output: Annotated[
        Optional[Path],
        typer.Option(
            "--output",
            "-o",
            help="Directory the generated tree is written to (default: QUICKFORM_OUTPUT_DIR or ./output).",
            metavar="DIR",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose logging.",
        ),
    ] = False,
) -> None:
    """Run a registry defined in Python code."""
    _configure_logging(verbose)

    registry = load_registry(target)
    _execute(registry, output or get_settings().output_dir)


@app.command()
def render(
    template_dir: Annotated[
        Path,
        typer.Argument(help="Template directory.", metavar="TEMPLATE_DIR"),
    ],
    templates: Annotated[
        list[str],
        typer.Option(
            "--render",
            help="Template path (relative to TEMPLATE_DIR) to render. Repeatable.",
            metavar="TEMPLATE",
        ),
    ],
    context_file: Annotated[
        Optional[Path],
        typer.Option(
            "--context",
            "-c",
            help="YAML or JSON mapping used as the context of every render.",
            metavar="FILE",
        ),
    ] = None,
    output: Annotated[
        Optional[Path],
        typer.Option(
            "--output",
            "-o",
            help="Directory the generated tree is written to (default: QUICKFORM_OUTPUT_DIR or ./output).",
            metavar="DIR",
        ),
    ] = None,
    loader: Annotated[
        str,
        typer.Option(
            "--loader",
            help="'memory' copies the whole template tree to the output; 'disk' writes only rendered files.",
        ),
    ] = "memory",
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose logging.",
        ),
    ] = False,
) -> None:
    """Render templates from a directory with a static context."""
    _configure_logging(verbose)

    if loader not in ("memory", "disk"):
        raise typer.BadParameter(f"Unknown loader: {loader!r}", param_hint="--loader")
    if not template_dir.is_dir():
        raise typer.BadParameter(f"Not a directory: {template_dir}", param_hint="TEMPLATE_DIR")

    context = parse_context_file(context_file)
    settings = get_settings()

    try:
        registry = OperationRegistry.from_dir(template_dir, loader=loader, **settings.jinja_options())  # type: ignore[arg-type]
    except QuickformError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e

    def static_context() -> dict[str, Any]:
        return context

    for template in templates:
        registry.render_operation(template, static_context, label=f"render {template}")

    logger.debug(f"Config: {len(templates)} template(s), loader={loader}")
    _execute(registry, output or settings.output_dir)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
