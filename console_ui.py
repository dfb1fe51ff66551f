#!/usr/bin/env python3
"""
Console UI Module using Rich

Styled output, configuration tables, activity spinners and operator prompts
for the Anaktesis CLI. Prompts never fail on a closed or non-interactive
stdin: they fall back to the caller's (safe) default instead.
"""

from typing import Any, Optional, TextIO

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table


class ConsoleUI:
    """Console UI handler using Rich"""

    def __init__(
        self,
        force_terminal: Optional[bool] = None,
        file: Optional[TextIO] = None,
        input_stream: Optional[TextIO] = None,
        width: Optional[int] = None,
    ):
        """Initialize console

        Args:
            force_terminal: Force or disable terminal features
            file: Output stream (defaults to stdout)
            input_stream: Stream prompts read from (defaults to stdin)
            width: Fixed console width
        """
        self.console = Console(force_terminal=force_terminal, file=file, width=width, highlight=False)
        self.input_stream = input_stream

    # Basic styled output methods
    def print_success(self, message: str):
        """Print success message in green"""
        self.console.print(message, style="green")

    def print_error(self, message: str):
        """Print error message in red"""
        self.console.print(message, style="red bold")

    def print_warning(self, message: str):
        """Print warning message in yellow"""
        self.console.print(message, style="yellow")

    def print_info(self, message: str):
        """Print info message in cyan"""
        self.console.print(message, style="cyan")

    def print_progress(self, message: str):
        """Print progress message in dim white"""
        self.console.print(message, style="white dim")

    def print_plain(self, message: str):
        """Print message in plain white"""
        self.console.print(message, style="white")

    def print_header(self, title: str, subtitle: Optional[str] = None):
        """Print a header with optional subtitle"""
        if subtitle:
            header_text = f"[bold]{title}[/bold]\n[dim]{subtitle}[/dim]"
        else:
            header_text = f"[bold]{title}[/bold]"

        panel = Panel(header_text, box=box.ROUNDED, padding=(0, 1))
        self.console.print(panel)

    # Configuration display
    def show_configuration(self, config: dict[str, Any]):
        """Display configuration in a formatted table"""
        table = Table(show_header=False, box=box.SIMPLE)
        table.add_column("Setting", style="cyan dim", min_width=20, justify="right")
        table.add_column("Value", style="cyan", min_width=30)

        for key, value in config.items():
            if isinstance(value, list):
                value = ", ".join(str(v) for v in value)
            table.add_row(key, str(value))

        self.console.print(table)

    def create_activity_progress(self):
        """Create a Rich progress context manager for activity-only display (no counts)"""
        return Progress(
            SpinnerColumn(),
            TextColumn("{task.description}"),
            TimeElapsedColumn(),
            console=self.console,
            transient=True,
        )

    def show_operation_summary(self, successful: list[str], failed: list[tuple], operation_name: str = "deleted"):
        """Show summary of completed operations"""
        if successful:
            self.print_success(f"Successfully {operation_name} {len(successful)} files")

        if failed:
            self.print_error(f"Failed on {len(failed)} files:")
            for filename, error in failed:
                self.console.print(f"[red dim]  • {filename}: {error}[/red dim]")

    # Interactive prompts
    def ask_choice(self, question: str, choices: dict[str, str], default: str) -> str:
        """Ask for one of several keyed choices

        Returns ``default`` on end of input, empty input or an unrecognized
        answer, so a non-interactive run can never pick anything else.
        """
        for key, label in choices.items():
            self.console.print(f"  [cyan]{key}[/cyan]. {label}")

        try:
            answer = self.console.input(f"{question} ", stream=self.input_stream)
        except EOFError:
            answer = ""

        if not answer:
            self.console.print()

        by_key = {key.lower(): key for key in choices}
        return by_key.get(answer.strip().lower(), default)
