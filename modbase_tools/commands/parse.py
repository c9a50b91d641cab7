"""Parse command: build the snapshot metadata for a downloaded installation."""

from __future__ import annotations

import json
from pathlib import Path

import click
import structlog
from rich.console import Console
from rich.table import Table

from modbase_tools.core.config import AppConfig
from modbase_tools.core.errors import ModbaseError
from modbase_tools.core.snapshot import ParseResult, parse_installation
from modbase_tools.core.steam import SteamClient

logger = structlog.get_logger()


def _get_context_objects(ctx: click.Context) -> tuple[AppConfig, Console, bool, bool]:
    """Extract common context objects."""
    config: AppConfig = ctx.obj["config"]
    console: Console = ctx.obj["console"]
    verbose: bool = ctx.obj["verbose"]
    debug: bool = ctx.obj["debug"]
    return config, console, verbose, debug


def _output_summary(console: Console, result: ParseResult, verbose: bool) -> None:
    metadata = result.metadata
    console.print(f"[green]Metadata saved to {result.metadata_path}[/green]")
    console.print(f"  Version: [cyan]{metadata.version}[/cyan]")
    if metadata.version_name:
        console.print(f"  Name: {metadata.version_name}")
    console.print(f"  Updated: {metadata.updated}")
    console.print(f"  Release notes: {metadata.release_notes.file}")

    if result.best_effort:
        console.print(
            f"[yellow]No release notes found for {metadata.version}; "
            f"using notes for {result.notes_version}[/yellow]"
        )

    if verbose and metadata.depots:
        table = Table(title="Depots")
        table.add_column("Depot", style="cyan")
        table.add_column("Manifest")
        table.add_column("Updated")
        table.add_column("Name")
        for depot_id, info in metadata.depots.items():
            table.add_row(
                depot_id,
                info["manifest"],
                info.get("updated", "-"),
                info.get("name", ""),
            )
        console.print(table)


@click.command()
@click.argument("input_dir", type=click.Path(file_okay=False, path_type=Path))
@click.argument("output_dir", type=click.Path(file_okay=False, path_type=Path))
@click.argument("release_notes_dir", type=click.Path(file_okay=False, path_type=Path))
@click.pass_context
def parse(
    ctx: click.Context,
    input_dir: Path,
    output_dir: Path,
    release_notes_dir: Path,
) -> None:
    """Write version metadata for INPUT_DIR into OUTPUT_DIR.

    Release notes for the installed version and its ancestors are fetched
    into RELEASE_NOTES_DIR unless already present.
    """
    config, console, verbose, debug = _get_context_objects(ctx)

    try:
        with SteamClient(config.steam) as client:
            result = parse_installation(
                input_dir,
                output_dir,
                release_notes_dir,
                config,
                client,
            )
    except ModbaseError as e:
        console.print(f"[red]Error: {e}[/red]")
        if debug:
            import traceback
            console.print(traceback.format_exc())
        raise click.Abort() from e

    if config.output_format == "json":
        print(json.dumps(result.metadata.to_document(), indent=2, ensure_ascii=False))
    else:
        _output_summary(console, result, verbose)
