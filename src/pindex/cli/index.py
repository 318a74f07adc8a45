"""pindex index command - build or refresh the index."""

import json
from pathlib import Path

import click
from rich.table import Table

from pindex.cli.utils import load_repo_config
from pindex.core.errors import PindexError
from pindex.core.progress import get_console, pluralize, spinner, status
from pindex.index.ops import IndexCoordinator


@click.command()
@click.argument("path", default=".", type=click.Path(exists=True, path_type=Path))
@click.option("--force", is_flag=True, help="Re-parse files even when unchanged")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def index_command(ctx: click.Context, path: Path, force: bool, as_json: bool) -> None:
    """Index every source and document file, then resolve imports.

    PATH is the project root (default: current directory).
    """
    repo_root, config = load_repo_config(path, verbose=ctx.obj.get("verbose", False))

    coordinator = IndexCoordinator(repo_root, config)
    try:
        with spinner(f"Indexing {repo_root}"):
            result = coordinator.index_all(force=force)
            resolved = coordinator.resolve_dependencies()
    except PindexError as e:
        raise click.ClickException(e.message) from e
    finally:
        coordinator.close()

    if as_json:
        click.echo(
            json.dumps(
                {
                    "indexed": result.indexed,
                    "updated": result.updated,
                    "skipped": result.skipped,
                    "edges": resolved.edges,
                    "errors": result.errors,
                }
            )
        )
        return

    table = Table(title=f"Index: {repo_root}", show_header=True)
    table.add_column("Result")
    table.add_column("Count", justify="right")
    table.add_row("Indexed", str(result.indexed))
    table.add_row("Updated", str(result.updated))
    table.add_row("Skipped", str(result.skipped))
    table.add_row("Import edges", str(resolved.edges))
    table.add_row("Errors", str(len(result.errors)))
    get_console().print(table)

    for error in result.errors:
        status(error, style="warning", indent=2)
    if result.errors:
        status(f"Completed with {pluralize(len(result.errors), 'error')}", style="warning")
    else:
        status("Index up to date", style="success")
