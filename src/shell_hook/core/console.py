"""Console output helpers.

Status messages go to stderr through rich so they never mix with the
child's stdout. The child's own output is echoed raw by the relay.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

console = Console(stderr=True, highlight=False)

PREFIX = escape("[shell-hook]")


def info(message: str) -> None:
    console.print(f"[cyan]{PREFIX}[/cyan] {escape(message)}")


def success(message: str) -> None:
    console.print(f"[green]{PREFIX}[/green] {escape(message)}")


def warning(message: str) -> None:
    console.print(f"[yellow]{PREFIX} {escape(message)}[/yellow]")


def error(message: str) -> None:
    console.print(f"[bold red]{PREFIX} Error:[/bold red] [red]{escape(message)}[/red]")


def detail(message: str) -> None:
    console.print(f"[dim]  {escape(message)}[/dim]")


def preview(message: str) -> None:
    """Dry-run output: printed as-is, never styled."""
    console.print(message, markup=False, highlight=False, soft_wrap=True)


def setup_logging(verbose: bool = False) -> None:
    """Route library logging through rich. DEBUG when verbose, else WARNING."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=verbose)],
        force=True,
    )
