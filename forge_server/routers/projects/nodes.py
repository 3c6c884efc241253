"""Node CRUD endpoints."""

from typing import Iterable, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from forge_server import store
from forge_server.database import get_async_session
from forge_server.logging_config import get_logger
from forge_server.nodes import Node, node_status
from forge_server.serializers import serialize_node, serialize_nodes

from ._common import (
    get_project_or_404,
    get_node_or_404,
    build_node,
    get_project_write_session,
    CreateNodeRequest,
    UpdateNodeRequest,
)

logger = get_logger(__name__)
router = APIRouter()


def _split(value: Optional[str]) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def filter_nodes(
    nodes: Iterable[Node],
    type: Optional[str] = None,
    status: Optional[str] = None,
    tags: Optional[str] = None,
    parent_id: Optional[str] = None,
    milestone: Optional[str] = None,
    q: Optional[str] = None,
) -> list[Node]:
    """Apply list filters, keeping collection order.

    ``type`` and ``status`` are comma lists matched exactly; ``tags`` matches
    nodes carrying any listed tag; ``parent_id="null"`` selects root nodes;
    ``q`` is a case-insensitive substring search over title and content.
    """
    types = set(_split(type))
    statuses = set(_split(status))
    wanted_tags = set(_split(tags))
    needle = q.lower() if q else None

    result = []
    for node in nodes:
        if types and node.type not in types:
            continue
        if statuses and node_status(node) not in statuses:
            continue
        if wanted_tags and not wanted_tags.intersection(node.tags):
            continue
        if parent_id is not None:
            expected = None if parent_id == "null" else parent_id
            if node.parent != expected:
                continue
        if milestone and getattr(node, "milestone", None) != milestone:
            continue
        if needle and needle not in node.title.lower() and needle not in node.content.lower():
            continue
        result.append(node)
    return result


@router.get("/{project_id}/nodes")
async def list_nodes(
    project_id: str,
    type: Optional[str] = None,
    status: Optional[str] = None,
    tags: Optional[str] = None,
    parent_id: Optional[str] = None,
    milestone: Optional[str] = None,
    q: Optional[str] = None,
    session: AsyncSession = Depends(get_async_session),
):
    """List nodes of a project in collection order."""
    logger.debug(
        f"Listing nodes: project_id={project_id}, type={type}, status={status}, "
        f"tags={tags}, parent_id={parent_id}, milestone={milestone}, q={q}"
    )
    await get_project_or_404(session, project_id)
    snapshot = await store.load_snapshot(session, project_id)
    nodes = filter_nodes(
        snapshot.iter_nodes(),
        type=type,
        status=status,
        tags=tags,
        parent_id=parent_id,
        milestone=milestone,
        q=q,
    )
    return serialize_nodes(nodes, snapshot)


@router.post("/{project_id}/nodes")
async def create_node(
    project_id: str,
    req: CreateNodeRequest,
    session: AsyncSession = Depends(get_project_write_session),
):
    """Create a node. Dependency targets must already exist in the project."""
    logger.debug(f"Creating node: project_id={project_id}, type={req.type.value}")
    node = build_node(req)
    created = await store.create_node(session, project_id, node)
    snapshot = await store.load_snapshot(session, project_id)
    return serialize_node(created, snapshot)


@router.get("/{project_id}/nodes/{node_id}")
async def get_node(
    project_id: str, node_id: str, session: AsyncSession = Depends(get_async_session)
):
    """Get a single node with its derived ``blocks`` list."""
    logger.debug(f"Getting node: project_id={project_id}, node_id={node_id}")
    await get_project_or_404(session, project_id)
    snapshot = await store.load_snapshot(session, project_id)
    return serialize_node(get_node_or_404(snapshot, node_id), snapshot)


@router.patch("/{project_id}/nodes/{node_id}")
async def update_node(
    project_id: str,
    node_id: str,
    req: UpdateNodeRequest,
    session: AsyncSession = Depends(get_project_write_session),
):
    """Update a node. A new ``depends_on`` list is cycle-checked before commit."""
    changes = req.model_dump()
    logger.debug(
        f"Updating node: project_id={project_id}, node_id={node_id}, fields={sorted(changes)}"
    )
    updated = await store.update_node(session, project_id, node_id, changes)
    snapshot = await store.load_snapshot(session, project_id)
    return serialize_node(updated, snapshot)


@router.delete("/{project_id}/nodes/{node_id}")
async def delete_node(
    project_id: str, node_id: str, session: AsyncSession = Depends(get_project_write_session)
):
    """Delete a node and every dependency edge touching it."""
    logger.debug(f"Deleting node: project_id={project_id}, node_id={node_id}")
    await get_project_or_404(session, project_id)
    await store.delete_node(session, project_id, node_id)
    return {"status": "deleted"}
