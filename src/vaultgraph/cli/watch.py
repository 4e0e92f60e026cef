"""vg watch command - keep the store current while notes change."""

import asyncio
import contextlib
from pathlib import Path

import click

from vaultgraph.cli.utils import VAULT_ARGUMENT, handle_errors, make_coordinator
from vaultgraph.core.progress import file_progress, status
from vaultgraph.index.models import WatchEvent
from vaultgraph.index.ops import IndexCoordinator


def _report(event: WatchEvent) -> None:
    status(f"{event.kind.value}: {event.path}", style="info")


async def _run(coordinator: IndexCoordinator) -> None:
    with file_progress("Embedding") as on_progress:
        result = await coordinator.initialize(
            watch=True, on_progress=on_progress, on_update=_report
        )
    status(
        f"Watching {coordinator.vault_root} ({result.documents} notes indexed)",
        style="success",
    )
    try:
        await asyncio.Event().wait()
    finally:
        await coordinator.close()


@click.command()
@VAULT_ARGUMENT
@click.pass_context
def watch_command(ctx: click.Context, vault: Path) -> None:
    """Index VAULT, then re-embed notes as they change until interrupted."""
    coordinator = make_coordinator(ctx, vault)
    with handle_errors(), contextlib.suppress(KeyboardInterrupt):
        asyncio.run(_run(coordinator))
    status("Stopped", style="info")
