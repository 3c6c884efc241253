"""Node dependency management and graph analytics endpoints."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from forge_server import store
from forge_server.database import get_async_session
from forge_server.graph import (
    build_dependency_graph,
    get_blocked_tasks,
    get_critical_path,
    get_would_unblock,
    would_create_cycle,
)
from forge_server.logging_config import get_logger
from forge_server.serializers import serialize_nodes

from ._common import (
    get_project_or_404,
    get_node_or_404,
    get_project_write_session,
    AddDependencyRequest,
)

logger = get_logger(__name__)
router = APIRouter()


@router.get("/{project_id}/nodes/{node_id}/dependencies")
async def get_dependencies(
    project_id: str, node_id: str, session: AsyncSession = Depends(get_async_session)
):
    """Dependencies of a node and the nodes that depend on it."""
    logger.debug(f"Getting dependencies: project_id={project_id}, node_id={node_id}")
    await get_project_or_404(session, project_id)
    snapshot = await store.load_snapshot(session, project_id)
    get_node_or_404(snapshot, node_id)
    return {
        "depends_on": snapshot.list_dependencies(node_id),
        "depended_on_by": snapshot.list_dependents(node_id),
    }


@router.post("/{project_id}/nodes/{node_id}/dependencies", status_code=201)
async def add_dependency(
    project_id: str,
    node_id: str,
    req: AddDependencyRequest,
    session: AsyncSession = Depends(get_project_write_session),
):
    """Make ``node_id`` depend on ``depends_on_id``; rejected if it would close a cycle."""
    logger.debug(
        f"Adding dependency: project_id={project_id}, node_id={node_id}, "
        f"depends_on_id={req.depends_on_id}"
    )
    await store.add_dependency(session, project_id, node_id, req.depends_on_id)
    return {"node_id": node_id, "depends_on_id": req.depends_on_id}


@router.get("/{project_id}/nodes/{node_id}/dependencies/check")
async def check_dependency(
    project_id: str,
    node_id: str,
    depends_on_id: str = Query(..., min_length=1),
    session: AsyncSession = Depends(get_async_session),
):
    """Dry run: would adding this dependency create a cycle?"""
    logger.debug(
        f"Checking dependency: project_id={project_id}, node_id={node_id}, "
        f"depends_on_id={depends_on_id}"
    )
    await get_project_or_404(session, project_id)
    snapshot = await store.load_snapshot(session, project_id)
    get_node_or_404(snapshot, node_id)
    graph = build_dependency_graph(snapshot)
    return {"would_create_cycle": would_create_cycle(graph, depends_on_id, node_id)}


@router.delete("/{project_id}/nodes/{node_id}/dependencies/{depends_on_id}")
async def remove_dependency(
    project_id: str,
    node_id: str,
    depends_on_id: str,
    session: AsyncSession = Depends(get_project_write_session),
):
    """Remove a dependency. Succeeds whether or not the edge existed."""
    logger.debug(
        f"Removing dependency: project_id={project_id}, node_id={node_id}, "
        f"depends_on_id={depends_on_id}"
    )
    await get_project_or_404(session, project_id)
    await store.remove_dependency(session, project_id, node_id, depends_on_id)
    return {"status": "removed"}


@router.get("/{project_id}/blocked-tasks")
async def blocked_tasks(project_id: str, session: AsyncSession = Depends(get_async_session)):
    """Incomplete tasks with at least one unmet prerequisite."""
    logger.debug(f"Getting blocked tasks: project_id={project_id}")
    await get_project_or_404(session, project_id)
    snapshot = await store.load_snapshot(session, project_id)
    return serialize_nodes(get_blocked_tasks(snapshot), snapshot)


@router.get("/{project_id}/critical-path")
async def critical_path(project_id: str, session: AsyncSession = Depends(get_async_session)):
    """Longest chain of incomplete tasks, start to end."""
    logger.debug(f"Getting critical path: project_id={project_id}")
    await get_project_or_404(session, project_id)
    snapshot = await store.load_snapshot(session, project_id)
    return serialize_nodes(get_critical_path(snapshot), snapshot)


@router.get("/{project_id}/nodes/{node_id}/would-unblock")
async def would_unblock(
    project_id: str, node_id: str, session: AsyncSession = Depends(get_async_session)
):
    """Tasks that completing ``node_id`` would unblock."""
    logger.debug(f"Getting would-unblock: project_id={project_id}, node_id={node_id}")
    await get_project_or_404(session, project_id)
    snapshot = await store.load_snapshot(session, project_id)
    get_node_or_404(snapshot, node_id)
    return serialize_nodes(get_would_unblock(snapshot, node_id), snapshot)


@router.get("/{project_id}/dependency-graph")
async def get_dependency_graph(
    project_id: str, session: AsyncSession = Depends(get_async_session)
):
    """Task graph for visualization: vertices, forward edges and the critical path."""
    logger.debug(f"Getting dependency graph: project_id={project_id}")
    await get_project_or_404(session, project_id)
    snapshot = await store.load_snapshot(session, project_id)
    graph = build_dependency_graph(snapshot)

    # Vertices and edges listed in collection order for stable output.
    task_ids = [n.id for n in snapshot.iter_nodes() if n.id in graph.nodes]
    nodes_data = []
    edges_data = []
    for task_id in task_ids:
        task = snapshot.get_node(task_id)
        nodes_data.append(
            {
                "id": task.id,
                "title": task.title,
                "status": task.status,
                "priority": task.priority,
            }
        )
        for dep_id in snapshot.list_dependencies(task_id):
            edges_data.append({"from": dep_id, "to": task_id})

    return {
        "nodes": nodes_data,
        "edges": edges_data,
        "critical_path": [t.id for t in get_critical_path(snapshot)],
    }
