"""Critical path: the longest chain of outstanding dependent tasks."""

from __future__ import annotations

from collections import deque
from typing import Optional

from forge_server.graph.source import NodeCollection, as_source
from forge_server.logging_config import get_logger
from forge_server.nodes import TaskNode

logger = get_logger(__name__)


def get_critical_path(nodes: NodeCollection) -> list[TaskNode]:
    """Longest chain of incomplete tasks, ordered start -> end.

    Completed tasks drop out entirely: a task whose only prerequisites are
    complete starts its own chain. Length counts tasks, so an isolated open
    task is a path of one.

    Ties are broken by collection order: the chain ending at the first task
    (in the order the source yields nodes) that reaches the maximum length
    wins. Callers comparing outputs across stores rely on this, so both
    stores must yield nodes in the same order.
    """
    source = as_source(nodes)

    open_tasks: dict[str, TaskNode] = {
        node.id: node
        for node in source.iter_nodes()
        if isinstance(node, TaskNode) and node.status != "complete"
    }
    if not open_tasks:
        return []

    adj: dict[str, list[str]] = {tid: [] for tid in open_tasks}
    in_degree: dict[str, int] = {tid: 0 for tid in open_tasks}
    for tid in open_tasks:
        for dep_id in source.list_dependencies(tid):
            if dep_id in open_tasks:
                adj[dep_id].append(tid)
                in_degree[tid] += 1

    length: dict[str, int] = {tid: 0 for tid in open_tasks}
    pred: dict[str, Optional[str]] = {tid: None for tid in open_tasks}

    queue: deque[str] = deque()
    for tid, degree in in_degree.items():
        if degree == 0:
            queue.append(tid)
            length[tid] = 1

    # Kahn order guarantees length[u] is final before u is expanded.
    while queue:
        u = queue.popleft()
        for v in adj[u]:
            if length[u] + 1 > length[v]:
                length[v] = length[u] + 1
                pred[v] = u
            in_degree[v] -= 1
            if in_degree[v] == 0:
                queue.append(v)

    end: Optional[str] = None
    best = 0
    for tid in open_tasks:
        if length[tid] > best:
            best = length[tid]
            end = tid

    if end is None:
        # Every open task sits on a stored cycle; nothing was reachable.
        logger.warning("No critical path: open tasks form a dependency cycle")
        return []

    path: list[TaskNode] = []
    current: Optional[str] = end
    while current is not None:
        path.append(open_tasks[current])
        current = pred[current]
    path.reverse()
    return path
