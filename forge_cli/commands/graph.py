"""Dependency graph commands.

Every command runs either against a project directory on disk (``--dir``),
using the in-process engine, or against a project on the server
(``--project``), using the HTTP API.
"""

from pathlib import Path
from typing import Optional

import httpx
import typer

from forge_cli.client import ForgeClient
from forge_cli.formatting import console, print_json, print_tasks
from forge_server.graph import (
    MemoryNodeSource,
    build_dependency_graph,
    get_blocked_tasks,
    get_critical_path,
    get_would_unblock,
    would_create_cycle,
)
from forge_server.project_loader import load_project
from forge_server.serializers import serialize_nodes

DIR_OPTION = typer.Option(
    None, "--dir", "-d", help="Project directory (runs the engine locally)"
)
PROJECT_OPTION = typer.Option(
    None, "--project", "-p", help="Project ID on the server"
)
JSON_OPTION = typer.Option(False, "--json", help="Print raw JSON")


def _get_client(ctx: typer.Context) -> ForgeClient:
    if ctx.obj and "client" in ctx.obj:
        return ctx.obj["client"]
    return ForgeClient()


def _fail(message: str):
    console.print(f"[red]Error: {message}[/red]")
    raise typer.Exit(1)


def _http_error_message(e: httpx.HTTPError) -> str:
    if isinstance(e, httpx.HTTPStatusError):
        try:
            detail = e.response.json().get("detail")
        except ValueError:
            detail = None
        return f"{e.response.status_code} {detail or e.response.reason_phrase}"
    return f"Error connecting to server: {e}"


def _check_target(project_dir: Optional[Path], project: Optional[str]) -> None:
    if (project_dir is None) == (project is None):
        _fail("pass exactly one of --dir or --project")


def _load_source(project_dir: Path) -> MemoryNodeSource:
    try:
        return load_project(str(project_dir)).source
    except FileNotFoundError as e:
        _fail(str(e))


def _fetch(fetch):
    """Run an API call, turning HTTP failures into a CLI error."""
    try:
        return fetch()
    except httpx.HTTPError as e:
        _fail(_http_error_message(e))


def blocked(
    ctx: typer.Context,
    project_dir: Optional[Path] = DIR_OPTION,
    project: Optional[str] = PROJECT_OPTION,
    as_json: bool = JSON_OPTION,
):
    """List tasks blocked by an incomplete prerequisite."""
    _check_target(project_dir, project)
    if project_dir is not None:
        source = _load_source(project_dir)
        tasks = serialize_nodes(get_blocked_tasks(source), source)
    else:
        client = _get_client(ctx)
        tasks = _fetch(lambda: client.get_blocked_tasks(project))

    if as_json:
        print_json(tasks)
        return
    if not tasks:
        console.print("[green]No blocked tasks[/green]")
        return
    print_tasks(tasks, title="Blocked Tasks")


def critical_path(
    ctx: typer.Context,
    project_dir: Optional[Path] = DIR_OPTION,
    project: Optional[str] = PROJECT_OPTION,
    as_json: bool = JSON_OPTION,
):
    """Show the longest chain of incomplete tasks."""
    _check_target(project_dir, project)
    if project_dir is not None:
        source = _load_source(project_dir)
        tasks = serialize_nodes(get_critical_path(source), source)
    else:
        client = _get_client(ctx)
        tasks = _fetch(lambda: client.get_critical_path(project))

    if as_json:
        print_json(tasks)
        return
    if not tasks:
        console.print("[green]No incomplete tasks[/green]")
        return
    print_tasks(tasks, title=f"Critical Path ({len(tasks)} tasks)", numbered=True)


def would_unblock(
    ctx: typer.Context,
    node_id: str = typer.Argument(..., help="Node that would be completed"),
    project_dir: Optional[Path] = DIR_OPTION,
    project: Optional[str] = PROJECT_OPTION,
    as_json: bool = JSON_OPTION,
):
    """List tasks that completing NODE_ID would unblock."""
    _check_target(project_dir, project)
    if project_dir is not None:
        source = _load_source(project_dir)
        if source.get_node(node_id) is None:
            _fail(f"Node not found: {node_id}")
        tasks = serialize_nodes(get_would_unblock(source, node_id), source)
    else:
        client = _get_client(ctx)
        tasks = _fetch(lambda: client.get_would_unblock(project, node_id))

    if as_json:
        print_json(tasks)
        return
    if not tasks:
        console.print(f"[yellow]Completing {node_id} would not unblock any task[/yellow]")
        return
    print_tasks(tasks, title=f"Unblocked by {node_id}")


def check_cycle(
    ctx: typer.Context,
    node_id: str = typer.Argument(..., help="Dependent node"),
    depends_on_id: str = typer.Argument(..., help="Proposed dependency"),
    project_dir: Optional[Path] = DIR_OPTION,
    project: Optional[str] = PROJECT_OPTION,
    as_json: bool = JSON_OPTION,
):
    """Check whether NODE_ID depending on DEPENDS_ON_ID would create a cycle."""
    _check_target(project_dir, project)
    if project_dir is not None:
        source = _load_source(project_dir)
        graph = build_dependency_graph(source)
        cycle = would_create_cycle(graph, depends_on_id, node_id)
    else:
        client = _get_client(ctx)
        cycle = _fetch(lambda: client.check_dependency(project, node_id, depends_on_id))

    if as_json:
        print_json({"would_create_cycle": cycle})
        return
    if cycle:
        console.print(
            f"[red]Cycle:[/red] {node_id} depending on {depends_on_id} would create a cycle"
        )
    else:
        console.print(f"[green]OK:[/green] {node_id} can depend on {depends_on_id}")
