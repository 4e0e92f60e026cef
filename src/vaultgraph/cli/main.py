"""vaultgraph CLI - vg command."""

import click

from vaultgraph.cli.index import index_command
from vaultgraph.cli.query import graph_command, search_command, similar_command
from vaultgraph.cli.status import status_command
from vaultgraph.cli.watch import watch_command
from vaultgraph.core.logging import configure_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="vg")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """vaultgraph - semantic similarity and connection graphs for markdown vaults."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(level="DEBUG" if verbose else "INFO")


cli.add_command(index_command, name="index")
cli.add_command(similar_command, name="similar")
cli.add_command(graph_command, name="graph")
cli.add_command(search_command, name="search")
cli.add_command(watch_command, name="watch")
cli.add_command(status_command, name="status")


if __name__ == "__main__":
    cli()
