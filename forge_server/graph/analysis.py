"""Blocked-task and unblock queries.

Both queries share one rule for whether a prerequisite is met:

- a task is met when complete,
- a decision is met when an option is selected,
- any other node type, or an id that resolves to nothing, is met.

Treating dangling ids as met means a deleted prerequisite never leaves a task
stuck.
"""

from __future__ import annotations

from typing import Optional, assert_never

from forge_server.graph.source import NodeCollection, NodeSource, as_source
from forge_server.nodes import (
    AssemblyNode,
    ComponentNode,
    DecisionNode,
    ModuleNode,
    Node,
    NoteNode,
    SubsystemNode,
    TaskNode,
)


def is_satisfied(node: Optional[Node]) -> bool:
    """Whether ``node`` no longer holds up the tasks that depend on it."""
    match node:
        case None:
            return True
        case TaskNode():
            return node.status == "complete"
        case DecisionNode():
            return node.status == "selected"
        case ComponentNode() | NoteNode() | SubsystemNode() | AssemblyNode() | ModuleNode():
            return True
        case _:
            assert_never(node)


def _open_tasks(source: NodeSource):
    for node in source.iter_nodes():
        if isinstance(node, TaskNode) and node.status != "complete":
            yield node


def get_blocked_tasks(nodes: NodeCollection) -> list[TaskNode]:
    """Incomplete tasks with at least one unmet prerequisite, in collection order."""
    source = as_source(nodes)
    return [
        task
        for task in _open_tasks(source)
        if any(
            not is_satisfied(source.get_node(dep_id))
            for dep_id in source.list_dependencies(task.id)
        )
    ]


def get_would_unblock(nodes: NodeCollection, completing_id: str) -> list[TaskNode]:
    """Tasks for which ``completing_id`` is the last unmet prerequisite.

    A task qualifies when it is incomplete, depends on ``completing_id``, and
    every other prerequisite is already met.
    """
    source = as_source(nodes)
    unblocked: list[TaskNode] = []

    for task in _open_tasks(source):
        dep_ids = source.list_dependencies(task.id)
        if completing_id not in dep_ids:
            continue
        if all(
            is_satisfied(source.get_node(dep_id))
            for dep_id in dep_ids
            if dep_id != completing_id
        ):
            unblocked.append(task)

    return unblocked
