"""Rich table formatting helpers for the forge CLI."""

import json
from datetime import datetime
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table
from rich import box

console = Console()


def print_table(
    headers: list[str],
    rows: list[list[str]],
    title: Optional[str] = None,
):
    """Print a formatted table."""
    table = Table(
        title=title,
        box=box.ROUNDED,
        header_style="bold cyan",
        border_style="dim",
    )
    for header in headers:
        table.add_column(header)
    for row in rows:
        table.add_row(*row)
    console.print(table)


def print_status(label: str, value: str, color: str = "green"):
    """Print a status line with colored value."""
    console.print(f"[bold]{label}:[/bold] [{color}]{value}[/{color}]")


def print_json(data) -> None:
    """Print raw JSON, unstyled, for piping into other tools."""
    typer.echo(json.dumps(data, indent=2))


def format_ts(ts) -> str:
    """Format epoch ms timestamp to readable string."""
    if not ts or not isinstance(ts, (int, float)):
        return "-"
    try:
        return datetime.fromtimestamp(ts / 1000).strftime("%Y-%m-%d %H:%M")
    except (OverflowError, OSError, ValueError):
        return str(ts)


STATUS_COLORS = {
    "pending": "dim",
    "in_progress": "yellow",
    "blocked": "red",
    "complete": "green",
    "selected": "green",
    "superseded": "dim",
    "ordered": "yellow",
    "received": "blue",
    "installed": "green",
    "planning": "dim",
    "on_hold": "yellow",
}

PRIORITY_COLORS = {
    "high": "red",
    "medium": "yellow",
    "low": "dim",
}


def colored_status(status: Optional[str]) -> str:
    """Return a Rich-markup colored status string."""
    if not status:
        return "-"
    color = STATUS_COLORS.get(status, "white")
    return f"[{color}]{status}[/{color}]"


def colored_priority(priority: Optional[str]) -> str:
    if not priority:
        return "-"
    color = PRIORITY_COLORS.get(priority, "white")
    return f"[{color}]{priority}[/{color}]"


def print_tasks(tasks: list[dict], title: Optional[str] = None, numbered: bool = False):
    """Table of serialized task nodes."""
    headers = ["ID", "Title", "Status", "Priority", "Depends On"]
    if numbered:
        headers.insert(0, "#")
    rows = []
    for i, t in enumerate(tasks, 1):
        row = [
            t.get("id", "?"),
            t.get("title", "-"),
            colored_status(t.get("status")),
            colored_priority(t.get("priority")),
            ", ".join(t.get("depends_on", [])) or "-",
        ]
        if numbered:
            row.insert(0, str(i))
        rows.append(row)
    print_table(headers, rows, title=title)


def print_nodes(nodes: list[dict], title: Optional[str] = None):
    """Table of serialized nodes of any type."""
    rows = [
        [
            n.get("id", "?"),
            n.get("type", "-"),
            n.get("title", "-"),
            colored_status(n.get("status")),
            n.get("parent") or "-",
            ", ".join(n.get("tags", [])) or "-",
        ]
        for n in nodes
    ]
    print_table(["ID", "Type", "Title", "Status", "Parent", "Tags"], rows, title=title)
