"""Shared console helpers.

Rich output for the pipeline: a rule per step, one-line status messages
and the closing summary table.  Leaf components never print; they report
through return values and exceptions.
"""

from __future__ import annotations

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.rule import Rule
from rich.table import Table

console = Console()


STEP_NAMES: dict[int, str] = {
    1: "COMPOSE",
    2: "PRUNE",
    3: "RENDER",
}

STEP_COLORS: dict[int, str] = {
    1: "bright_cyan",
    2: "bright_yellow",
    3: "bright_green",
}


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string.

    Examples::

        format_duration(0.42) -> "0.4s"
        format_duration(65.2) -> "1m 5s"
    """
    if seconds < 0:
        return "0.0s"
    minutes = int(seconds // 60)
    secs = seconds % 60
    if minutes > 0:
        return f"{minutes}m {int(secs)}s"
    return f"{secs:.1f}s"


def print_step_header(step: int, name: str) -> None:
    """Print a full-width rule announcing a pipeline step."""
    color = STEP_COLORS.get(step, "white")
    console.print(
        Rule(
            f"[bold {color}] Step {step}: {name.upper()} [/bold {color}]",
            style=color,
        )
    )


def print_summary_table(rows: dict[str, str], title: str = "Summary") -> None:
    """Print *rows* as an aligned setting/value listing under *title*."""
    table = Table(title=title, title_justify="left", box=box.SIMPLE_HEAD)
    table.add_column("Setting", style="bold")
    table.add_column("Value", overflow="fold")
    for setting, value in rows.items():
        table.add_row(setting, escape(str(value)))
    console.print(table)


# Status lines: (colour, leading mark).
_STATUS_STYLES: dict[str, tuple[str, str]] = {
    "success": ("green", "OK"),
    "warning": ("yellow", "!!"),
    "error": ("red", "XX"),
}


def _print_status(kind: str, message: str) -> None:
    color, mark = _STATUS_STYLES[kind]
    console.print(f"[bold {color}]{mark}[/bold {color}] {escape(message)}")


def print_success(message: str) -> None:
    _print_status("success", message)


def print_error(message: str) -> None:
    """Report a failed step.  Markup in *message* is printed literally."""
    _print_status("error", message)


def print_warning(message: str) -> None:
    _print_status("warning", message)
