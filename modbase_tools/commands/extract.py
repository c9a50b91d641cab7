"""Extract command: mirror an installation with binaries reduced to metadata."""

from __future__ import annotations

import json
from pathlib import Path

import click
import structlog
from rich.console import Console
from rich.table import Table

from modbase_tools.core.config import AppConfig, ExtractConfig, normalize_extensions
from modbase_tools.core.errors import ModbaseError
from modbase_tools.core.extract import Extractor
from modbase_tools.core.types import ExtractStats
from modbase_tools.core.utils import format_size

logger = structlog.get_logger()


def _get_context_objects(ctx: click.Context) -> tuple[AppConfig, Console, bool, bool]:
    """Extract common context objects."""
    config: AppConfig = ctx.obj["config"]
    console: Console = ctx.obj["console"]
    verbose: bool = ctx.obj["verbose"]
    debug: bool = ctx.obj["debug"]
    return config, console, verbose, debug


def build_extract_config(base: ExtractConfig, exclude_extensions: str | None) -> ExtractConfig:
    """Apply a comma-separated placeholder extension override.

    Only the placeholder list is replaced; skipped extensions stay as
    configured.
    """
    if not exclude_extensions:
        return base
    override = normalize_extensions(exclude_extensions.split(","))
    return base.model_copy(update={"placeholder_extensions": override})


def _output_stats(console: Console, stats: ExtractStats, output_dir: Path) -> None:
    table = Table(title="Extraction Summary")
    table.add_column("Category", style="cyan")
    table.add_column("Files", justify="right")

    table.add_row("Copied", str(stats.copied))
    table.add_row("Placeholders", str(stats.placeholders))
    table.add_row("Skipped", str(stats.skipped))
    table.add_row("Copied size", format_size(stats.copied_bytes))
    table.add_row("Excluded size", format_size(stats.excluded_bytes))

    console.print(table)
    console.print(f"[green]Extraction complete: {output_dir}[/green]")


@click.command()
@click.argument("input_dir", type=click.Path(file_okay=False, path_type=Path))
@click.argument("output_dir", type=click.Path(file_okay=False, path_type=Path))
@click.argument("exclude_extensions", required=False)
@click.pass_context
def extract(
    ctx: click.Context,
    input_dir: Path,
    output_dir: Path,
    exclude_extensions: str | None,
) -> None:
    """Mirror INPUT_DIR into the empty OUTPUT_DIR.

    EXCLUDE_EXTENSIONS is an optional comma-separated list (for example
    ".png,.dds") replacing the extensions written as placeholders.
    """
    config, console, verbose, debug = _get_context_objects(ctx)
    extract_config = build_extract_config(config.extract, exclude_extensions)

    def on_file(path: Path, disposition: str) -> None:
        console.print(f"  {disposition:<11} {path}")

    try:
        extractor = Extractor(extract_config, on_file=on_file if verbose else None)
        stats = extractor.run(input_dir, output_dir)
    except ModbaseError as e:
        console.print(f"[red]Error: {e}[/red]")
        if debug:
            import traceback
            console.print(traceback.format_exc())
        raise click.Abort() from e

    if config.output_format == "json":
        print(json.dumps(stats.model_dump(), indent=2))
    else:
        _output_stats(console, stats, output_dir)
