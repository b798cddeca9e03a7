"""Shared terminal output for the console scripts."""

from __future__ import annotations

import logging
import sys
from typing import Any, Iterable

from rich.console import Console
from rich.logging import RichHandler
from rich.prompt import Confirm
from rich.table import Table

console = Console()
err_console = Console(stderr=True)

_STATUS_STYLE = {
    "ok": "green",
    "skip": "dim",
    "warning": "yellow",
    "failed": "red",
}


def setup_logging(verbose: bool = False) -> None:
    """Log to stderr; only warnings unless *verbose*."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s  %(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def header(title: str) -> None:
    console.rule(f"[bold blue]{title}[/bold blue]", style="blue")


def success(message: str) -> None:
    console.print(f"[green]✅ {message}[/green]")


def warning(message: str) -> None:
    console.print(f"[yellow]⚠️  {message}[/yellow]")


def error(message: str) -> None:
    console.print(f"[red]❌ {message}[/red]")


def info(message: str) -> None:
    console.print(f"[blue]ℹ️  {message}[/blue]")


def print_steps(steps: Iterable[dict[str, Any]]) -> None:
    for s in steps:
        status = s.get("status", "")
        style = _STATUS_STYLE.get(status, "white")
        detail = s.get("detail", "")
        console.print(f"  [{style}]{status:<8}[/{style}] {s.get('step', '?')}  [dim]{detail}[/dim]")


def key_value_table(rows: dict[str, str], title: str = "") -> Table:
    table = Table(title=title or None, show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold")
    table.add_column()
    for key, value in rows.items():
        table.add_row(key, value or "-")
    return table


def confirm(question: str, *, assume_yes: bool = False) -> bool:
    """Ask a y/N question; non-interactive stdin counts as *no*."""
    if assume_yes:
        return True
    if not sys.stdin.isatty():
        return False
    try:
        return Confirm.ask(question, default=False, console=console)
    except EOFError:
        return False
