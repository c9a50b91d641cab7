"""Check command: compare against the latest released version."""

from __future__ import annotations

import json

import click
import structlog
from rich.console import Console

from modbase_tools.core.config import AppConfig
from modbase_tools.core.errors import ModbaseError, NotFoundError
from modbase_tools.core.release_notes import latest_patch_version
from modbase_tools.core.steam import SteamClient

logger = structlog.get_logger()

LATEST_EVENTS_COUNT = 10


def _get_context_objects(ctx: click.Context) -> tuple[AppConfig, Console, bool, bool]:
    """Extract common context objects."""
    config: AppConfig = ctx.obj["config"]
    console: Console = ctx.obj["console"]
    verbose: bool = ctx.obj["verbose"]
    debug: bool = ctx.obj["debug"]
    return config, console, verbose, debug


def fetch_latest_version(client: SteamClient) -> str:
    """Latest patch version from the newest announcements.

    Raises:
        CollaboratorError: If the feed cannot be fetched
        NotFoundError: If no recent announcement names a patch version
    """
    events = client.fetch_events(0, LATEST_EVENTS_COUNT)
    latest = latest_patch_version(event.get("event_name") or "" for event in events)
    if latest is None:
        raise NotFoundError("Could not find latest patch version")
    return latest


@click.command()
@click.argument("compare_version", required=False)
@click.pass_context
def check(ctx: click.Context, compare_version: str | None) -> None:
    """Print the latest version, or compare against COMPARE_VERSION.

    Exits with status 0 when COMPARE_VERSION is the latest version and 1
    when it differs (an update is available).
    """
    config, console, verbose, debug = _get_context_objects(ctx)

    try:
        with SteamClient(config.steam) as client:
            latest = fetch_latest_version(client)
    except ModbaseError as e:
        console.print(f"[red]Error: {e}[/red]")
        if debug:
            import traceback
            console.print(traceback.format_exc())
        raise click.Abort() from e

    logger.debug("latest_version", version=latest, compare=compare_version)

    if config.output_format == "json":
        info = {"latest": latest}
        if compare_version is not None:
            info["current"] = compare_version
            info["up_to_date"] = compare_version == latest
        print(json.dumps(info, indent=2))
    elif compare_version is None:
        # Bare version on stdout for automation
        click.echo(latest)
    elif verbose:
        if compare_version == latest:
            console.print(f"[green]Up to date: {latest}[/green]")
        else:
            console.print(f"[yellow]Update available: {compare_version} -> {latest}[/yellow]")

    if compare_version is not None:
        ctx.exit(0 if compare_version == latest else 1)
