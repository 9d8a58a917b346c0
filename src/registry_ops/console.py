"""Shared rich console and labeled status output.

All user-facing output goes through ``console``. The helpers prefix each
message with a colored marker so operators can scan for failures.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

console = Console()


def header(title: str) -> None:
    """Print a stage banner."""
    console.print()
    console.rule(f"[bold blue]{title}[/bold blue]", style="blue")
    console.print()


def info(message: str) -> None:
    console.print(f"[bold blue]i[/bold blue] {message}")


def success(message: str) -> None:
    console.print(f"[bold green]v[/bold green] {message}")


def warn(message: str) -> None:
    console.print(f"[bold yellow]![/bold yellow] {message}")


def error(message: str) -> None:
    console.print(f"[bold red]x[/bold red] {message}")


def print_logs(logs: str) -> None:
    """Print captured log output without markup interpretation."""
    if logs:
        console.print(logs.rstrip(), markup=False, highlight=False)


def configure_logging(verbose: bool = False) -> None:
    """Route diagnostic logging through rich.

    Args:
        verbose: Show DEBUG records (subprocess argv, probe results).
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
        force=True,
    )
