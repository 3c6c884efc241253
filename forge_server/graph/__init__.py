"""Dependency and critical-path engine.

Every query is a pure function over a node snapshot:

    from forge_server.graph import build_dependency_graph, would_create_cycle
    graph = build_dependency_graph(nodes)
    if would_create_cycle(graph, dependency_id, dependent_id):
        ...
"""

from forge_server.graph.analysis import get_blocked_tasks, get_would_unblock, is_satisfied
from forge_server.graph.builder import DependencyGraph, build_dependency_graph
from forge_server.graph.critical_path import get_critical_path
from forge_server.graph.cycles import would_create_cycle
from forge_server.graph.source import (
    IndexedNodeSource,
    MemoryNodeSource,
    NodeCollection,
    NodeSource,
    SqlNodeSource,
    as_source,
)

__all__ = [
    "DependencyGraph",
    "IndexedNodeSource",
    "MemoryNodeSource",
    "NodeCollection",
    "NodeSource",
    "SqlNodeSource",
    "as_source",
    "build_dependency_graph",
    "get_blocked_tasks",
    "get_critical_path",
    "get_would_unblock",
    "is_satisfied",
    "would_create_cycle",
]
