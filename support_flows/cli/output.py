"""Output formatting utilities."""

import json
from typing import Any, Dict, List, Optional

import yaml
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from ..config import Severity
from ..models import ValidationReport

console = Console()

SEVERITY_STYLES = {
    Severity.ERROR: "red",
    Severity.WARNING: "yellow",
    Severity.INFO: "blue",
}


def format_output(data: Any, format_type: str = "table", columns: Optional[List[str]] = None) -> None:
    """Format and print data based on format type."""
    if format_type == "json":
        print_json(data)
    elif format_type == "yaml":
        print_yaml(data)
    elif isinstance(data, list):
        print_table(data, columns)
    elif isinstance(data, dict):
        print_table([data], columns)
    else:
        console.print(data)


def _print_highlighted(text: str, lexer: str) -> None:
    console.print(Syntax(text, lexer, theme="monokai", line_numbers=False))


def print_json(data: Any) -> None:
    """Print data as indented JSON. Enums and other objects fall back to str()."""
    _print_highlighted(json.dumps(data, indent=2, default=str), "json")


def print_yaml(data: Any) -> None:
    """Print data as block-style YAML, keeping key order."""
    _print_highlighted(yaml.safe_dump(data, default_flow_style=False, sort_keys=False), "yaml")


def _cell(value: Any) -> str:
    if value is None:
        return "-"
    if isinstance(value, bool):
        return "✓" if value else "✗"
    if isinstance(value, (list, dict)):
        text = json.dumps(value)
        return text[:47] + "..." if len(text) > 50 else text
    return str(value)


def print_table(
    data: List[Dict[str, Any]],
    columns: Optional[List[str]] = None,
    title: Optional[str] = None,
) -> None:
    """Print data as a formatted table."""
    if not data:
        console.print("[dim]No data to display[/dim]")
        return

    table = Table(title=title, show_header=True, header_style="bold cyan")
    display_columns = columns or list(data[0].keys())[:8]

    for col in display_columns:
        table.add_column(col.replace("_", " ").title())

    for item in data:
        table.add_row(*[_cell(item.get(col)) for col in display_columns])

    console.print(table)


def print_report(report: ValidationReport, title: Optional[str] = None) -> None:
    """Print a validation report as a table of issues."""
    if not report.issues:
        print_success(f"{title or report.flow_id}: no issues")
        return

    table = Table(title=title or report.flow_id, show_header=True, header_style="bold cyan")
    table.add_column("Severity")
    table.add_column("Code")
    table.add_column("Node")
    table.add_column("Message")

    for issue in report.issues:
        style = SEVERITY_STYLES.get(issue.severity, "white")
        table.add_row(
            f"[{style}]{issue.severity.value}[/{style}]",
            issue.code.value,
            issue.node_id or "-",
            escape(issue.message),
        )

    console.print(table)


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]✗[/red] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]![/yellow] {message}")
