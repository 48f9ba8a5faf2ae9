"""Console output helpers."""

import json
from typing import Any, Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text


class OutputFormatter:
    """Formats user-facing output as text or JSON."""

    def __init__(
        self,
        json_output: bool = False,
        quiet: bool = False,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
    ):
        """Initialize output formatter.

        Args:
            json_output: Emit machine-readable JSON instead of text
            quiet: Suppress non-essential output
            console: Console for regular output
            err_console: Console for warnings and errors
        """
        self.json_output = json_output
        self.quiet = quiet
        self.console = console or Console(highlight=False)
        self.err_console = err_console or Console(stderr=True, highlight=False)

    def print(self, message: str = "") -> None:
        """Print a plain line."""
        if not self.json_output and not self.quiet:
            self.console.print(message, markup=False)

    def info(self, message: str) -> None:
        """Print an informational message."""
        if not self.json_output and not self.quiet:
            self.console.print(message, markup=False)

    def success(self, message: str) -> None:
        """Print a success message."""
        if not self.json_output and not self.quiet:
            self.console.print(f"✓ {message}", style="green", markup=False)

    def warning(self, message: str) -> None:
        """Print a warning (shown even in quiet mode)."""
        if not self.json_output:
            self.err_console.print(f"Warning: {message}", style="yellow", markup=False)

    def error(self, message: str) -> None:
        """Print an error (shown in every mode)."""
        self.err_console.print(f"Error: {message}", style="bold red", markup=False)

    def output_json(self, data: Any) -> None:
        """Print data as JSON."""
        self.console.print_json(json.dumps(data, default=str))

    def print_table(
        self, columns: list[str], rows: list[list[str]], title: Optional[str] = None
    ) -> None:
        """Print rows as a table."""
        if self.json_output or self.quiet:
            return
        table = Table(title=title)
        for column in columns:
            table.add_column(column)
        for row in rows:
            table.add_row(*(Text(cell) for cell in row))
        self.console.print(table)
