"""Dependency management commands against the server."""

import typer

from forge_cli.commands.graph import JSON_OPTION, _fetch, _get_client
from forge_cli.formatting import console, print_json, print_status

app = typer.Typer(help="Manage task dependencies on the server")

PROJECT_OPTION = typer.Option(..., "--project", "-p", help="Project ID on the server")


@app.command("list")
def list_dependencies(
    ctx: typer.Context,
    node_id: str = typer.Argument(..., help="Node ID"),
    project: str = PROJECT_OPTION,
    as_json: bool = JSON_OPTION,
):
    """Show what NODE_ID depends on and what depends on it."""
    client = _get_client(ctx)
    deps = _fetch(lambda: client.get_dependencies(project, node_id))

    if as_json:
        print_json(deps)
        return
    print_status("Depends on", ", ".join(deps.get("depends_on", [])) or "-", "white")
    print_status("Depended on by", ", ".join(deps.get("depended_on_by", [])) or "-", "white")


@app.command("add")
def add(
    ctx: typer.Context,
    node_id: str = typer.Argument(..., help="Dependent task"),
    depends_on_id: str = typer.Argument(..., help="Prerequisite node"),
    project: str = PROJECT_OPTION,
):
    """Make NODE_ID depend on DEPENDS_ON_ID. Refused if it would create a cycle."""
    client = _get_client(ctx)
    _fetch(lambda: client.add_dependency(project, node_id, depends_on_id))
    console.print(f"[green]Added:[/green] {node_id} now depends on {depends_on_id}")


@app.command("remove")
def remove(
    ctx: typer.Context,
    node_id: str = typer.Argument(..., help="Dependent task"),
    depends_on_id: str = typer.Argument(..., help="Prerequisite node"),
    project: str = PROJECT_OPTION,
):
    """Remove the dependency of NODE_ID on DEPENDS_ON_ID."""
    client = _get_client(ctx)
    _fetch(lambda: client.remove_dependency(project, node_id, depends_on_id))
    console.print(f"[green]Removed:[/green] {node_id} no longer depends on {depends_on_id}")
