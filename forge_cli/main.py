"""Forge CLI entry point."""

from pathlib import Path
from typing import Optional

import httpx
import typer

from forge_cli.client import ForgeClient
from forge_cli.commands import deps, graph, project
from forge_cli.formatting import console, format_ts, print_json, print_status, print_table
from forge_server.config import settings
from forge_server.project_loader import list_projects

app = typer.Typer(
    name="forge",
    help="Forge CLI - hardware project dependencies and critical path",
    no_args_is_help=True,
)

# Graph commands are top-level, not a sub-group
app.command("blocked")(graph.blocked)
app.command("critical-path")(graph.critical_path)
app.command("would-unblock")(graph.would_unblock)
app.command("check-cycle")(graph.check_cycle)

app.add_typer(project.app, name="project")
app.add_typer(deps.app, name="deps")


@app.callback()
def main(
    ctx: typer.Context,
    url: str = typer.Option(
        "http://localhost:8000", "--url", envvar="FORGE_URL", help="Server URL"
    ),
):
    """Forge CLI"""
    ctx.ensure_object(dict)
    ctx.obj["url"] = url
    ctx.obj["client"] = ForgeClient(base_url=url)


def _get_client(ctx: typer.Context) -> ForgeClient:
    """Get the client from context, with fallback."""
    if ctx.obj:
        return ctx.obj.get("client", ForgeClient())
    return ForgeClient()


@app.command()
def status(ctx: typer.Context):
    """Show forge server status."""
    client = _get_client(ctx)
    try:
        result = client.get_status()
    except httpx.HTTPError as e:
        console.print(f"[red]Error connecting to server: {e}[/red]")
        raise typer.Exit(1)

    server_status = result.get("status", "unknown")
    print_status("Server", server_status, "green" if server_status == "ok" else "yellow")
    print_status("Version", result.get("version", "unknown"))
    db_ok = result.get("database_connected", False)
    print_status(
        "Database",
        f"{result.get('database', 'unknown')} ({'connected' if db_ok else 'disconnected'})",
        "green" if db_ok else "red",
    )


@app.command()
def projects(
    ctx: typer.Context,
    workspace: Optional[Path] = typer.Option(
        None,
        "--dir",
        "-d",
        help="Workspace directory to scan instead of querying the server",
    ),
    local: bool = typer.Option(
        False, "--local", "-l", help=f"Scan FORGE_PROJECTS_DIR ({settings.projects_dir})"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON"),
):
    """List projects on the server, or in a workspace directory."""
    if workspace is not None or local:
        found = list_projects(str(workspace or settings.projects_dir))
        if as_json:
            print_json(found)
            return
        if not found:
            console.print("[yellow]No projects found[/yellow]")
            return
        rows = [[p["id"], p["name"], p["description"] or "-"] for p in found]
        print_table(["ID", "Name", "Description"], rows, title="Projects")
        return

    client = _get_client(ctx)
    try:
        found = client.list_projects(stats=True)
    except httpx.HTTPError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if as_json:
        print_json(found)
        return
    if not found:
        console.print("[yellow]No projects found[/yellow]")
        return

    rows = []
    for p in found:
        rows.append(
            [
                p.get("id", "?"),
                p.get("name", "?"),
                str(p.get("node_count", 0)),
                f"{p.get('completed_task_count', 0)}/{p.get('task_count', 0)}",
                format_ts(p.get("updated_at")),
            ]
        )
    print_table(["ID", "Name", "Nodes", "Tasks Done", "Updated"], rows, title="Projects")


if __name__ == "__main__":
    app()
