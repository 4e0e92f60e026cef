"""vg status command - show store, index and embedding-service state."""

import asyncio
import json
from pathlib import Path

import click

from vaultgraph.cli.utils import VAULT_ARGUMENT, handle_errors, make_coordinator


@click.command()
@VAULT_ARGUMENT
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--no-health", is_flag=True, help="Skip the embedding-service health check")
@click.pass_context
def status_command(ctx: click.Context, vault: Path, as_json: bool, no_health: bool) -> None:
    """Show vaultgraph status for VAULT (default: current directory)."""
    coordinator = make_coordinator(ctx, vault)
    try:
        with handle_errors():
            info = coordinator.status(check_embedding=not no_health)
    finally:
        asyncio.run(coordinator.close())

    if as_json:
        click.echo(json.dumps(info.to_dict(), indent=2))
        return

    if info.embedding_reachable is None:
        reachable = "not checked"
    else:
        reachable = "reachable" if info.embedding_reachable else "unreachable"

    click.echo(f"Vault: {info.vault_root}")
    click.echo(f"Store: {info.db_path}")
    click.echo(f"Documents: {info.documents}")
    click.echo(f"Blocks: {info.blocks}")
    click.echo(f"Model: {info.model}")
    click.echo(f"Embedding service: {info.embedding_url} ({reachable})")
