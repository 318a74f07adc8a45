"""User-facing output for CLI operations.

Usage::

    from pindex.core.progress import status, spinner

    status("Indexed 12 files", style="success")  # ✓ Indexed 12 files

    with spinner("Indexing"):
        do_work()
"""

from __future__ import annotations

import sys
from collections.abc import Iterator
from contextlib import contextmanager

import structlog
from rich.console import Console

# Console for output
_console = Console(stderr=True)

_STYLES = {
    "success": "[green]✓[/green] ",
    "error": "[red]✗[/red] ",
    "warning": "[yellow]![/yellow] ",
    "info": "  ",
    "none": "",
}


def _is_tty() -> bool:
    return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()


def get_console() -> Console:
    """Get the shared Rich console instance."""
    return _console


def status(message: str, *, style: str = "info", indent: int = 0) -> None:
    """Print a styled status message to stderr."""
    prefix = _STYLES.get(style, "")
    padding = " " * indent
    _console.print(f"{padding}{prefix}{message}", highlight=False)
    structlog.get_logger().debug("status", message=message, style=style)


def pluralize(count: int, singular: str, plural: str | None = None) -> str:
    """Return "1 file" or "3 files"."""
    if plural is None:
        plural = singular + "s"
    word = singular if count == 1 else plural
    return f"{count} {word}"


@contextmanager
def spinner(message: str, *, indent: int = 0) -> Iterator[None]:
    """Spinner on a TTY, a single line otherwise."""
    padding = " " * indent
    if _is_tty():
        with _console.status(f"{padding}[cyan]{message}[/cyan]", spinner="dots"):
            yield
    else:
        _console.print(f"{padding}{message}...", highlight=False)
        yield
