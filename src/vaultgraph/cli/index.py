"""vg index command - bring the store up to date with the vault."""

import asyncio
import json
from pathlib import Path

import click

from vaultgraph.cli.utils import VAULT_ARGUMENT, handle_errors, make_coordinator
from vaultgraph.core.progress import file_progress, pluralize, status


@click.command()
@VAULT_ARGUMENT
@click.option("--full", is_flag=True, help="Re-embed every file, not only changed ones")
@click.option("--json", "as_json", is_flag=True, help="Output stats as JSON")
@click.pass_context
def index_command(ctx: click.Context, vault: Path, full: bool, as_json: bool) -> None:
    """Scan VAULT and embed new or modified notes.

    VAULT is the vault root (default: current directory). Exits with status 1
    if any file failed to embed or save.
    """
    coordinator = make_coordinator(ctx, vault)
    try:
        with handle_errors(), file_progress("Embedding") as on_progress:
            stats = coordinator.reindex(full=full, on_progress=on_progress)
    finally:
        asyncio.run(coordinator.close())

    if as_json:
        click.echo(json.dumps(stats.to_dict(), indent=2))
    else:
        summary = (
            f"{pluralize(stats.processed, 'file')} embedded, "
            f"{stats.deleted} deleted, {stats.skipped} skipped, "
            f"{stats.failed} failed in {stats.duration_seconds:.1f}s"
        )
        status(summary, style="warning" if stats.failed else "success")

    if stats.failed:
        ctx.exit(1)
