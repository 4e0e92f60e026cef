"""CLI utilities."""

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import click
import structlog

from vaultgraph.config import get_index_paths, load_config
from vaultgraph.core.errors import InternalError, VaultGraphError
from vaultgraph.core.logging import configure_logging, get_log_file_path
from vaultgraph.index.ops import IndexCoordinator

log = structlog.get_logger(__name__)

VAULT_ARGUMENT = click.argument(
    "vault", default=".", type=click.Path(exists=True, file_okay=False, path_type=Path)
)


def _with_log_pointer(message: str) -> str:
    log_file = get_log_file_path()
    return f"{message}. See {log_file} for details." if log_file else message


@contextmanager
def handle_errors() -> Iterator[None]:
    """Turn errors into click errors (exit code 1, message on stderr).

    Anything that is not a VaultGraphError is logged with its traceback and
    reported as an internal error.
    """
    try:
        yield
    except (click.ClickException, click.exceptions.Exit, click.Abort):
        raise
    except VaultGraphError as e:
        raise click.ClickException(_with_log_pointer(str(e))) from e
    except Exception as e:
        log.exception("command_failed", error=str(e))
        internal = InternalError.unexpected(str(e) or type(e).__name__, type=type(e).__name__)
        raise click.ClickException(_with_log_pointer(str(internal))) from e


def make_coordinator(ctx: click.Context, vault: Path) -> IndexCoordinator:
    """Load the vault's config, apply it to logging, and build a coordinator.

    ``ctx.obj["embedder"]`` replaces the HTTP embedding client when set.

    Raises:
        click.ClickException: If the vault config is invalid.
    """
    vault_root = vault.resolve()
    with handle_errors():
        config = load_config(vault_root)

    if ctx.obj.get("verbose"):
        config.logging.level = "DEBUG"
    state_dir, _ = get_index_paths(vault_root, config)
    configure_logging(config=config.logging, vault_root=vault_root, state_dir=state_dir)

    return IndexCoordinator(vault_root, config, embedder=ctx.obj.get("embedder"))
