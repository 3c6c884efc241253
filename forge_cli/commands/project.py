"""Project inspection commands against the server."""

from typing import Optional

import typer

from forge_cli.commands.graph import JSON_OPTION, _fetch, _get_client
from forge_cli.formatting import (
    console,
    format_ts,
    print_json,
    print_nodes,
    print_status,
    print_table,
)

app = typer.Typer(help="Inspect projects on the server")


@app.command("show")
def show(
    ctx: typer.Context,
    project_id: str = typer.Argument(..., help="Project ID"),
    as_json: bool = JSON_OPTION,
):
    """Show project details."""
    client = _get_client(ctx)
    project = _fetch(lambda: client.get_project(project_id))

    if as_json:
        print_json(project)
        return
    print_status("Project", project.get("id", "?"), "cyan")
    print_status("Name", project.get("name", "-"), "white")
    print_status("Description", project.get("description") or "-", "white")
    print_status("Created", format_ts(project.get("created_at")), "white")
    print_status("Updated", format_ts(project.get("updated_at")), "white")


@app.command("nodes")
def nodes(
    ctx: typer.Context,
    project_id: str = typer.Argument(..., help="Project ID"),
    node_type: Optional[str] = typer.Option(
        None, "--type", "-t", help="Comma-separated node types"
    ),
    status: Optional[str] = typer.Option(
        None, "--status", "-s", help="Comma-separated statuses"
    ),
    tags: Optional[str] = typer.Option(
        None, "--tags", help="Comma-separated tags, any of which must match"
    ),
    parent: Optional[str] = typer.Option(
        None, "--parent", help='Parent node ID, or "null" for root nodes'
    ),
    milestone: Optional[str] = typer.Option(None, "--milestone", help="Task milestone"),
    query: Optional[str] = typer.Option(
        None, "--query", "-q", help="Search title and content"
    ),
    as_json: bool = JSON_OPTION,
):
    """List project nodes, optionally filtered."""
    client = _get_client(ctx)
    found = _fetch(
        lambda: client.list_nodes(
            project_id,
            type=node_type,
            status=status,
            tags=tags,
            parent_id=parent,
            milestone=milestone,
            q=query,
        )
    )

    if as_json:
        print_json(found)
        return
    if not found:
        console.print("[yellow]No nodes found[/yellow]")
        return
    print_nodes(found, title=f"Nodes ({len(found)})")


@app.command("graph")
def graph(
    ctx: typer.Context,
    project_id: str = typer.Argument(..., help="Project ID"),
    as_json: bool = JSON_OPTION,
):
    """Show the task dependency edges and the critical path."""
    client = _get_client(ctx)
    data = _fetch(lambda: client.get_dependency_graph(project_id))

    if as_json:
        print_json(data)
        return
    if not data.get("nodes"):
        console.print("[yellow]No tasks[/yellow]")
        return

    titles = {n["id"]: n.get("title", "-") for n in data["nodes"]}
    rows = [
        [e["from"], titles.get(e["from"], "-"), e["to"], titles.get(e["to"], "-")]
        for e in data.get("edges", [])
    ]
    print_table(
        ["Prerequisite", "Title", "Dependent", "Title"],
        rows,
        title=f"Dependencies ({len(rows)} edges)",
    )
    path = data.get("critical_path") or []
    if path:
        console.print(f"[bold]Critical path:[/bold] {' -> '.join(path)}")
