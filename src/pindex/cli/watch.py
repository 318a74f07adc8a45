"""pindex watch command - keep the index current and record a session."""

import asyncio
from pathlib import Path

import click

from pindex.cli.utils import load_repo_config
from pindex.core.progress import status
from pindex.index._internal.watcher import FileWatcher
from pindex.index.ops import IndexCoordinator


@click.command()
@click.argument("path", default=".", type=click.Path(exists=True, path_type=Path))
@click.option("--label", default=None, help="Label stored with the session")
@click.pass_context
def watch_command(ctx: click.Context, path: Path, label: str | None) -> None:
    """Watch PATH, re-index changed files and feed diffs to a new session.

    Runs in the foreground until interrupted.
    """
    repo_root, config = load_repo_config(path, verbose=ctx.obj.get("verbose", False))

    coordinator = IndexCoordinator(repo_root, config)
    try:
        coordinator.index_all()
        coordinator.resolve_dependencies()
        observer = coordinator.start_session(label=label)
        status(f"Session {observer.session_id} watching {repo_root}", style="success")

        watcher = FileWatcher(coordinator, observer)
        asyncio.run(watcher.run())
    except KeyboardInterrupt:
        click.echo("\nStopped")
    finally:
        coordinator.close()
