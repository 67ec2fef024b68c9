# crafters_toolbox/cli/utils/output.py
"""Output formatting utilities"""

import json
from typing import Any, Dict, List, Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from ...constants import EMOJI_CACHED, EMOJI_ERROR, EMOJI_SUCCESS
from ...models import BatchResult

console = Console()


def format_batch_result(result: BatchResult) -> None:
    """Format and display the outcome of a deployment batch"""
    if not result.outcomes:
        console.print("[yellow]No components selected[/yellow]")
        return

    table = Table(title="Pull Result" if result.pull else "Update Result", box=box.SIMPLE)
    table.add_column("", width=2)
    table.add_column("Component", style="cyan")
    table.add_column("Result")
    table.add_column("Time", justify="right", style="dim")

    for outcome in result.outcomes:
        if not outcome.success:
            symbol = f"[red]{EMOJI_ERROR}[/red]"
            message = f"[red]{escape(outcome.message or 'failed')}[/red]"
        elif outcome.cached:
            symbol = f"[dim]{EMOJI_CACHED}[/dim]"
            message = f"[dim]{escape(outcome.message or '')}[/dim]"
        else:
            symbol = f"[green]{EMOJI_SUCCESS}[/green]"
            message = escape(outcome.message or "")
        table.add_row(symbol, escape(outcome.name), message, f"{outcome.duration:.1f}s")

    console.print(table)

    summary = f"{result.succeeded} succeeded, {result.failed} failed"
    if result.cached:
        summary += f" ({result.cached} up to date)"
    summary += f" in {result.duration:.1f}s"

    if result.is_success:
        console.print(f"[green]{EMOJI_SUCCESS}[/green] {summary}")
        return

    lines = [f"[bold]{escape(o.name)}[/bold]: {escape(o.detail or o.message or '')}" for o in result.failures]
    console.print(Panel(
        "\n".join(lines),
        title=f"{EMOJI_ERROR} {summary}",
        border_style="red"
    ))


def format_component_list(rows: List[Dict[str, Any]], title: str = "Components") -> None:
    """Format and display declared components"""
    if not rows:
        console.print(f"[yellow]No {title.lower()} found[/yellow]")
        return

    table = Table(title=title, box=box.SIMPLE)
    table.add_column("ID", style="cyan")
    table.add_column("Source")
    table.add_column("Build", style="dim")
    table.add_column("Deployed", style="green")

    for row in rows:
        deployed = row.get("deployed") or []
        table.add_row(
            escape(row["id"]),
            escape(row.get("source", "-")),
            row.get("build", "none"),
            escape("\n".join(deployed)) if deployed else "[dim]-[/dim]"
        )

    console.print(table)


def format_json(data: Any, title: Optional[str] = None) -> None:
    """Format and display JSON data with syntax highlighting"""
    json_str = json.dumps(data, indent=2, default=str)
    if not console.is_terminal:
        # Piped output must stay parseable
        console.print(json_str, markup=False, highlight=False, soft_wrap=True)
        return

    syntax = Syntax(json_str, "json", theme="monokai", line_numbers=False)

    if title:
        panel = Panel(syntax, title=title, border_style="blue")
        console.print(panel)
    else:
        console.print(syntax)


def print_error(message: str, error: Optional[Exception] = None) -> None:
    """Print error message"""
    if error:
        console.print(f"[red]Error:[/red] {escape(message)}: {escape(str(error))}")
    else:
        console.print(f"[red]Error:[/red] {escape(message)}")
