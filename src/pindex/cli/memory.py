"""pindex memory command - print the session memory report."""

from pathlib import Path

import click

from pindex.cli.utils import load_repo_config
from pindex.index.ops import IndexCoordinator
from pindex.index.queries import MemoryQueries
from pindex.memory.report import get_session_memory


@click.command()
@click.argument("path", default=".", type=click.Path(exists=True, path_type=Path))
@click.option("--session", "session_id", default=None, help="Session id (default: latest)")
@click.option("--file", "file_path", default=None, help="Only observations about this file")
@click.option("--symbol", default=None, help="Only observations about this symbol (needs --file)")
@click.option("--include-stale", is_flag=True, help="Include stale observations")
@click.pass_context
def memory_command(
    ctx: click.Context,
    path: Path,
    session_id: str | None,
    file_path: str | None,
    symbol: str | None,
    include_stale: bool,
) -> None:
    """Print observations and anti-patterns recorded for a session as JSON."""
    repo_root, config = load_repo_config(path, verbose=ctx.obj.get("verbose", False))

    coordinator = IndexCoordinator(repo_root, config)
    try:
        if session_id is None:
            with coordinator.db.session() as session:
                latest = MemoryQueries(session).get_latest_session()
            if latest is None:
                raise click.ClickException("No sessions recorded yet. Run 'pindex watch' first.")
            session_id = latest.id

        report = get_session_memory(
            coordinator.db,
            session_id,
            file=file_path,
            symbol=symbol,
            include_stale=include_stale,
        )
    finally:
        coordinator.close()

    click.echo(report.model_dump_json(indent=2))
