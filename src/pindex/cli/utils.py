"""CLI utilities."""

from pathlib import Path

import click

from pindex.config.loader import load_config
from pindex.config.models import PindexConfig
from pindex.core.errors import PindexError
from pindex.core.logging import configure_logging


def load_repo_config(path: Path, *, verbose: bool = False) -> tuple[Path, PindexConfig]:
    """Resolve the project root, load its config and apply its logging section.

    Raises:
        click.ClickException: The config cannot be loaded
    """
    repo_root = path.resolve()
    try:
        config = load_config(repo_root)
    except PindexError as e:
        raise click.ClickException(f"{e.message} ({e.error_name})") from e

    logging_config = config.logging
    if verbose:
        logging_config = logging_config.model_copy(update={"level": "DEBUG"})
    configure_logging(config=logging_config)
    return repo_root, config
