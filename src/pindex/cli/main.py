"""pindex CLI - pindex command."""

import click

from pindex import __version__
from pindex.cli.index import index_command
from pindex.cli.memory import memory_command
from pindex.cli.watch import watch_command
from pindex.core.logging import configure_logging


@click.group()
@click.version_option(version=__version__, prog_name="pindex")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """pindex - incremental code index and session memory for AI coding agents."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(level="DEBUG" if verbose else "INFO")


cli.add_command(index_command, name="index")
cli.add_command(watch_command, name="watch")
cli.add_command(memory_command, name="memory")


if __name__ == "__main__":
    cli()
