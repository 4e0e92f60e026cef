"""vg similar / graph / search commands - query the in-memory index."""

import asyncio
import json
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from vaultgraph.cli.utils import handle_errors, make_coordinator
from vaultgraph.core.progress import spinner
from vaultgraph.index.models import ConnectionNode, NoteResult
from vaultgraph.index.ops import IndexCoordinator

_VAULT = click.argument("vault", type=click.Path(exists=True, file_okay=False, path_type=Path))


def _open(coordinator: IndexCoordinator) -> None:
    with spinner("Updating index"):
        asyncio.run(coordinator.initialize(watch=False))


def _print_results(results: list[NoteResult], as_json: bool) -> None:
    if as_json:
        click.echo(json.dumps([r.to_dict() for r in results], indent=2))
        return
    if not results:
        click.echo("No similar notes above threshold.")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Similarity", justify="right")
    table.add_column("Note")
    table.add_column("Blocks", justify="right")
    for r in results:
        table.add_row(f"{r.similarity:.3f}", r.path, str(len(r.blocks)))
    Console().print(table)


def _add_branch(tree: Tree, node: ConnectionNode) -> None:
    for child in node.connections or ():
        branch = tree.add(f"{child.path} [dim]({child.similarity:.3f})[/dim]")
        _add_branch(branch, child)


@click.command()
@_VAULT
@click.argument("note")
@click.option("--limit", type=int, default=None, help="Maximum results (1-100)")
@click.option("--threshold", type=float, default=None, help="Minimum similarity (0-1)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def similar_command(
    ctx: click.Context,
    vault: Path,
    note: str,
    limit: int | None,
    threshold: float | None,
    as_json: bool,
) -> None:
    """List notes similar to NOTE (a path relative to VAULT)."""
    coordinator = make_coordinator(ctx, vault)
    try:
        with handle_errors():
            _open(coordinator)
            results = coordinator.find_similar(note, limit, threshold)
    finally:
        asyncio.run(coordinator.close())
    _print_results(results, as_json)


@click.command()
@_VAULT
@click.argument("note")
@click.option("--depth", type=int, default=None, help="Levels below the root (1-5)")
@click.option("--max-per-level", type=int, default=None, help="Children per node (1-20)")
@click.option("--threshold", type=float, default=None, help="Minimum similarity (0-1)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def graph_command(
    ctx: click.Context,
    vault: Path,
    note: str,
    depth: int | None,
    max_per_level: int | None,
    threshold: float | None,
    as_json: bool,
) -> None:
    """Show the connection graph rooted at NOTE."""
    coordinator = make_coordinator(ctx, vault)
    try:
        with handle_errors():
            _open(coordinator)
            root = coordinator.build_graph(note, depth, max_per_level, threshold)
    finally:
        asyncio.run(coordinator.close())

    if root is None:
        raise click.ClickException(f"Note not indexed: {note}")

    if as_json:
        click.echo(json.dumps(root.to_dict(), indent=2))
        return

    tree = Tree(f"[bold]{root.path}[/bold]")
    _add_branch(tree, root)
    Console().print(tree)


@click.command()
@_VAULT
@click.argument("query")
@click.option("--limit", type=int, default=None, help="Maximum results (1-100)")
@click.option("--threshold", type=float, default=None, help="Minimum similarity (0-1)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def search_command(
    ctx: click.Context,
    vault: Path,
    query: str,
    limit: int | None,
    threshold: float | None,
    as_json: bool,
) -> None:
    """Find notes semantically similar to free-text QUERY."""
    coordinator = make_coordinator(ctx, vault)
    try:
        with handle_errors():
            _open(coordinator)
            results = coordinator.search(query, limit, threshold)
    finally:
        asyncio.run(coordinator.close())
    _print_results(results, as_json)
