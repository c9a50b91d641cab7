"""Download command: fetch game files with the depot download agent."""

from __future__ import annotations

import os
from pathlib import Path

import click
import structlog
from rich.console import Console

from modbase_tools.core.config import AppConfig
from modbase_tools.core.depot_downloader import TOTP_SECRET_ENV, DepotDownloader
from modbase_tools.core.errors import ModbaseError
from modbase_tools.core.versions import parse_version

logger = structlog.get_logger()


def _get_context_objects(ctx: click.Context) -> tuple[AppConfig, Console, bool, bool]:
    """Extract common context objects."""
    config: AppConfig = ctx.obj["config"]
    console: Console = ctx.obj["console"]
    verbose: bool = ctx.obj["verbose"]
    debug: bool = ctx.obj["debug"]
    return config, console, verbose, debug


@click.command()
@click.argument("version", type=str)
@click.argument("output_dir", type=click.Path(file_okay=False, path_type=Path), required=False)
@click.pass_context
def download(ctx: click.Context, version: str, output_dir: Path | None) -> None:
    """Download game VERSION into OUTPUT_DIR.

    The download agent reads STEAM_USERNAME and STEAM_PASSWORD from the
    environment. When STEAM_TOTP_SECRET is set, a Steam Guard code is
    generated and passed as STEAM_2FA_CODE.
    """
    config, console, verbose, debug = _get_context_objects(ctx)
    target = output_dir or config.download.default_dir

    try:
        parse_version(version)
        console.print(f"Downloading version {version}")
        console.print(f"  Output directory: {target}")
        if os.environ.get(TOTP_SECRET_ENV):
            console.print("  Using TOTP-generated 2FA code for authentication")

        DepotDownloader(config.download, config.steam).run(target)
    except ModbaseError as e:
        console.print(f"[red]Error: {e}[/red]")
        if debug:
            import traceback
            console.print(traceback.format_exc())
        raise click.Abort() from e

    console.print("[green]Download complete[/green]")
