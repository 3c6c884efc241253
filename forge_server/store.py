"""Relational node store.

Converts between ``nodes`` / ``node_dependencies`` rows and the node model,
loads per-project snapshots for the graph engine and guards every edge
write with the cycle detector.

All functions take the caller's ``AsyncSession`` and never commit. Writers
hold ``project_write_lock`` until their session commits, so a cycle check
and the write it guards cannot interleave with another writer's.
"""

from __future__ import annotations

import asyncio
import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Iterable, Optional

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from forge_server import models
from forge_server.errors import (
    ConflictError,
    DependencyCycleError,
    NotFoundError,
    ValidationError,
)
from forge_server.graph import SqlNodeSource, build_dependency_graph, would_create_cycle
from forge_server.logging_config import get_logger
from forge_server.nodes import Node, TaskNode, node_status, parse_node, type_specific_fields
from forge_server.utils import now_ms

logger = get_logger(__name__)

# Task fields with their own column, or stored as edge rows.
_COLUMN_FIELDS = {"priority", "milestone", "depends_on"}

# Per-project write locks, dropped once no writer holds or awaits them.
_project_locks: dict[str, asyncio.Lock] = {}
_lock_users: dict[str, int] = {}


@asynccontextmanager
async def project_write_lock(session: AsyncSession, project_id: str) -> AsyncIterator[AsyncSession]:
    """Serialise writes to one project within this process.

    The session is committed (or rolled back on error) before the lock is
    released. Row locks from ``get_project(for_update=True)`` cover writers
    in other processes on databases that support them; SQLite ignores them.
    """
    lock = _project_locks.setdefault(project_id, asyncio.Lock())
    _lock_users[project_id] = _lock_users.get(project_id, 0) + 1
    try:
        async with lock:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise
            await session.commit()
    finally:
        _lock_users[project_id] -= 1
        if not _lock_users[project_id]:
            del _lock_users[project_id]
            del _project_locks[project_id]


# ══════════════════════════════════════════════════════════════════════════
# ROW CONVERSION
# ══════════════════════════════════════════════════════════════════════════


def row_to_node(row: models.Node, depends_on: Iterable[str] = ()) -> Node:
    """Build the domain node for a row; ``depends_on`` comes from edge rows."""
    data: dict[str, Any] = json.loads(row.extra) if row.extra else {}
    data.update(
        id=row.id,
        type=row.type,
        title=row.title,
        content=row.content or "",
        tags=json.loads(row.tags) if row.tags else [],
        parent=row.parent_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
    if row.status is not None:
        data["status"] = row.status
    if row.type == "task":
        if row.priority is not None:
            data["priority"] = row.priority
        data["milestone"] = row.milestone
        data["depends_on"] = list(depends_on)
    return parse_node(data)


def node_to_values(node: Node) -> dict[str, Any]:
    """Column values for ``node``, excluding identity, ordering and edges."""
    extra = {k: v for k, v in type_specific_fields(node).items() if k not in _COLUMN_FIELDS}
    is_task = isinstance(node, TaskNode)
    return {
        "type": node.type,
        "title": node.title,
        "content": node.content,
        "status": node_status(node),
        "priority": node.priority if is_task else None,
        "milestone": node.milestone if is_task else None,
        "parent_id": node.parent,
        "tags": json.dumps(node.tags),
        "extra": json.dumps(extra),
    }


# ══════════════════════════════════════════════════════════════════════════
# READS
# ══════════════════════════════════════════════════════════════════════════


async def get_project(session: AsyncSession, project_id: str, for_update: bool = False) -> models.Project:
    """Fetch a project row, optionally locking it. Raises NotFoundError."""
    stmt = select(models.Project).where(models.Project.id == project_id)
    if for_update:
        # Cross-process guard on PostgreSQL. Not emitted on SQLite.
        stmt = stmt.with_for_update()
    project = (await session.execute(stmt)).scalar_one_or_none()
    if project is None:
        raise NotFoundError("Project", project_id)
    return project


async def get_node_row(session: AsyncSession, project_id: str, node_id: str) -> models.Node:
    result = await session.execute(
        select(models.Node).where(
            models.Node.id == node_id, models.Node.project_id == project_id
        )
    )
    row = result.scalar_one_or_none()
    if row is None:
        raise NotFoundError("Node", node_id)
    return row


async def load_snapshot(session: AsyncSession, project_id: str) -> SqlNodeSource:
    """Load every node and edge of a project in collection (``seq``) order."""
    rows = (
        await session.execute(
            select(models.Node)
            .where(models.Node.project_id == project_id)
            .order_by(models.Node.seq)
        )
    ).scalars().all()

    edge_rows = (
        await session.execute(
            select(models.NodeDependency.node_id, models.NodeDependency.depends_on_id)
            .join(models.Node, models.Node.id == models.NodeDependency.node_id)
            .where(models.Node.project_id == project_id)
            .order_by(models.NodeDependency.node_id, models.NodeDependency.position)
        )
    ).all()
    edges = [(node_id, depends_on_id) for node_id, depends_on_id in edge_rows]

    deps_by_node: dict[str, list[str]] = {}
    for node_id, depends_on_id in edges:
        deps_by_node.setdefault(node_id, []).append(depends_on_id)

    nodes = [row_to_node(row, deps_by_node.get(row.id, [])) for row in rows]
    logger.debug(
        f"Loaded snapshot: project_id={project_id}, nodes={len(nodes)}, edges={len(edges)}"
    )
    return SqlNodeSource(nodes, edges)


async def _next_seq(session: AsyncSession, project_id: str) -> int:
    result = await session.execute(
        select(func.max(models.Node.seq)).where(models.Node.project_id == project_id)
    )
    current = result.scalar_one_or_none()
    return 0 if current is None else current + 1


# ══════════════════════════════════════════════════════════════════════════
# DEPENDENCY CHECKS
# ══════════════════════════════════════════════════════════════════════════


def _check_targets(snapshot: SqlNodeSource, node: Node, depends_on: list[str]) -> None:
    """Only tasks carry dependencies, and every target must be in the project."""
    if not depends_on:
        return
    if not isinstance(node, TaskNode):
        raise ValidationError(
            f"Only tasks can have dependencies, {node.id} is a {node.type}",
            field="depends_on",
        )
    missing = [dep_id for dep_id in depends_on if snapshot.get_node(dep_id) is None]
    if missing:
        raise ValidationError(
            f"Dependency targets not found in project: {', '.join(missing)}",
            field="depends_on",
        )


async def _check_parent(
    session: AsyncSession, snapshot: SqlNodeSource, node_id: str, parent: Optional[str]
) -> None:
    if parent is None:
        return
    if parent == node_id:
        raise ValidationError("A node cannot be its own parent", field="parent")
    if snapshot.get_node(parent) is None:
        if await session.get(models.Node, parent) is None:
            raise ValidationError(f"Parent node not found: {parent}", field="parent")
        raise ValidationError("Parent node must be in the same project", field="parent")


async def _insert_edges(
    session: AsyncSession, node_id: str, depends_on: list[str], start: int = 0
) -> None:
    for offset, dep_id in enumerate(depends_on):
        session.add(
            models.NodeDependency(
                node_id=node_id, depends_on_id=dep_id, position=start + offset
            )
        )
    await session.flush()


# ══════════════════════════════════════════════════════════════════════════
# NODE WRITES
# ══════════════════════════════════════════════════════════════════════════


async def create_node(session: AsyncSession, project_id: str, node: Node) -> Node:
    """Insert a node plus its dependency edges. Returns the stored node."""
    project = await get_project(session, project_id, for_update=True)

    if await session.get(models.Node, node.id) is not None:
        raise ConflictError(f"Node already exists: {node.id}")

    snapshot = await load_snapshot(session, project_id)
    depends_on = node.depends_on if isinstance(node, TaskNode) else []
    # A new node has no dependents, so the only possible cycle is itself.
    if node.id in depends_on:
        raise DependencyCycleError(node.id, node.id)
    _check_targets(snapshot, node, depends_on)
    await _check_parent(session, snapshot, node.id, node.parent)

    now = now_ms()
    row = models.Node(
        id=node.id,
        project_id=project_id,
        seq=await _next_seq(session, project_id),
        created_at=node.created_at or now,
        updated_at=node.updated_at or now,
        **node_to_values(node),
    )
    session.add(row)
    await session.flush()
    await _insert_edges(session, node.id, depends_on)
    project.updated_at = now

    logger.info(f"Created node: project_id={project_id}, node_id={node.id}, type={node.type}")
    return row_to_node(row, depends_on)


async def update_node(
    session: AsyncSession, project_id: str, node_id: str, changes: dict[str, Any]
) -> Node:
    """Apply a partial update; a new ``depends_on`` list is cycle-checked first."""
    await get_project(session, project_id, for_update=True)
    row = await get_node_row(session, project_id, node_id)
    snapshot = await load_snapshot(session, project_id)
    current = snapshot.get_node(node_id)

    if "type" in changes and changes["type"] != row.type:
        raise ValidationError("Node type cannot be changed", field="type")
    if "parent" in changes:
        await _check_parent(session, snapshot, node_id, changes["parent"])
    if "depends_on" in changes and changes["depends_on"] is None:
        changes = {**changes, "depends_on": []}

    merged = current.model_dump(mode="json")
    merged.update({k: v for k, v in changes.items() if k not in ("id", "blocks")})
    merged["updated_at"] = now_ms()
    try:
        updated = parse_node(merged)
    except ValueError as e:
        raise ValidationError(str(e)) from e

    if "depends_on" in changes:
        await replace_dependencies(
            session,
            project_id,
            node_id,
            list(changes["depends_on"]),
            snapshot=snapshot,
            node=updated,
        )

    for key, value in node_to_values(updated).items():
        setattr(row, key, value)
    row.updated_at = updated.updated_at
    await session.flush()

    depends_on = updated.depends_on if isinstance(updated, TaskNode) else []
    logger.info(f"Updated node: project_id={project_id}, node_id={node_id}")
    return row_to_node(row, depends_on)


async def delete_node(session: AsyncSession, project_id: str, node_id: str) -> None:
    """Delete a node and every edge that touches it. Its children become roots."""
    await get_project(session, project_id, for_update=True)
    row = await get_node_row(session, project_id, node_id)
    await session.execute(
        delete(models.NodeDependency).where(
            or_(
                models.NodeDependency.node_id == node_id,
                models.NodeDependency.depends_on_id == node_id,
            )
        )
    )
    await session.execute(
        update(models.Node)
        .where(models.Node.project_id == project_id, models.Node.parent_id == node_id)
        .values(parent_id=None, updated_at=now_ms())
    )
    await session.delete(row)
    await session.flush()
    logger.info(f"Deleted node: project_id={project_id}, node_id={node_id}")


async def delete_project(session: AsyncSession, project_id: str) -> None:
    """Delete a project with all of its nodes and edges."""
    project = await get_project(session, project_id, for_update=True)
    node_ids = select(models.Node.id).where(models.Node.project_id == project_id)
    await session.execute(
        delete(models.NodeDependency).where(
            or_(
                models.NodeDependency.node_id.in_(node_ids),
                models.NodeDependency.depends_on_id.in_(node_ids),
            )
        )
    )
    await session.execute(delete(models.Node).where(models.Node.project_id == project_id))
    await session.delete(project)
    await session.flush()
    logger.info(f"Deleted project: project_id={project_id}")


# ══════════════════════════════════════════════════════════════════════════
# EDGE WRITES
# ══════════════════════════════════════════════════════════════════════════


async def add_dependency(
    session: AsyncSession, project_id: str, node_id: str, depends_on_id: str
) -> None:
    """Make ``node_id`` depend on ``depends_on_id``.

    The project row is locked, a fresh snapshot is loaded and the cycle
    detector runs before the edge row is written. Raises
    DependencyCycleError without writing anything when the edge would
    close a cycle.
    """
    await get_project(session, project_id, for_update=True)
    row = await get_node_row(session, project_id, node_id)
    snapshot = await load_snapshot(session, project_id)
    node = snapshot.get_node(node_id)

    _check_targets(snapshot, node, [depends_on_id])
    current = snapshot.list_dependencies(node_id)
    if depends_on_id in current:
        raise ConflictError(f"{node_id} already depends on {depends_on_id}")

    graph = build_dependency_graph(snapshot)
    if would_create_cycle(graph, depends_on_id, node_id):
        logger.info(
            f"Rejected dependency: {node_id} -> {depends_on_id} would create a cycle"
        )
        raise DependencyCycleError(node_id, depends_on_id)

    await _insert_edges(session, node_id, [depends_on_id], start=len(current))
    row.updated_at = now_ms()
    logger.info(f"Added dependency: project_id={project_id}, {node_id} -> {depends_on_id}")


async def replace_dependencies(
    session: AsyncSession,
    project_id: str,
    node_id: str,
    depends_on: list[str],
    snapshot: Optional[SqlNodeSource] = None,
    node: Optional[Node] = None,
) -> None:
    """Rewrite the dependency list of ``node_id``.

    Every proposed edge is checked against the snapshot with the node's
    current dependencies removed. Nothing is written if any check fails.
    """
    if snapshot is None:
        await get_project(session, project_id, for_update=True)
        await get_node_row(session, project_id, node_id)
        snapshot = await load_snapshot(session, project_id)
    if node is None:
        node = snapshot.get_node(node_id)

    depends_on = list(dict.fromkeys(depends_on))
    _check_targets(snapshot, node, depends_on)

    graph = build_dependency_graph(snapshot)
    for dep_id in snapshot.list_dependencies(node_id):
        graph.edges.get(dep_id, set()).discard(node_id)
    for dep_id in depends_on:
        if would_create_cycle(graph, dep_id, node_id):
            raise DependencyCycleError(node_id, dep_id)
        graph.edges.setdefault(dep_id, set()).add(node_id)

    await session.execute(
        delete(models.NodeDependency).where(models.NodeDependency.node_id == node_id)
    )
    await _insert_edges(session, node_id, depends_on)
    logger.debug(f"Replaced dependencies: node_id={node_id}, depends_on={depends_on}")


async def remove_dependency(
    session: AsyncSession, project_id: str, node_id: str, depends_on_id: str
) -> None:
    """Delete the edge if present. Removing an edge never creates a cycle."""
    row = await get_node_row(session, project_id, node_id)
    result = await session.execute(
        delete(models.NodeDependency).where(
            models.NodeDependency.node_id == node_id,
            models.NodeDependency.depends_on_id == depends_on_id,
        )
    )
    if result.rowcount:
        row.updated_at = now_ms()
    logger.info(
        f"Removed dependency: project_id={project_id}, {node_id} -> {depends_on_id}, "
        f"rows={result.rowcount}"
    )
