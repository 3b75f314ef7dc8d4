"""
Output formatting utilities for the CLI.

Provides consistent output formatting and logging setup across all commands.
"""

import logging
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from taskloom.providers.models import TelemetryRecord

# Global console instance
console = Console()


def setup_logging(level: str = "warning") -> None:
    """Route ``taskloom`` loggers through rich at the given level."""
    logger = logging.getLogger("taskloom")
    logger.setLevel(level.upper())
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        logger.addHandler(RichHandler(console=console, show_path=False, markup=False))


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]✗[/red] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]![/yellow] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]i[/blue] {message}")


def print_table(
    headers: list[str],
    rows: list[list[Any]],
    title: str | None = None,
) -> None:
    """Print a table."""
    table = Table(title=title)

    for header in headers:
        table.add_column(header)

    for row in rows:
        table.add_row(*[str(cell) for cell in row])

    console.print(table)


def print_usage_summary(record: TelemetryRecord) -> None:
    """Print the token and cost summary of one AI call."""
    print_table(
        ["Provider", "Model", "Input", "Output", "Total", "Cost"],
        [
            [
                record.provider_name,
                record.model_used,
                record.input_tokens,
                record.output_tokens,
                record.total_tokens,
                f"{record.total_cost:.6f} {record.currency}",
            ]
        ],
        title="AI Usage Summary",
    )
