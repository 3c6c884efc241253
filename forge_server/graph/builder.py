"""Dependency graph construction."""

from __future__ import annotations

from dataclasses import dataclass, field

from forge_server.graph.source import NodeCollection, as_source
from forge_server.nodes import TaskNode


@dataclass
class DependencyGraph:
    """Task vertices plus forward edges (dependency id -> dependent ids).

    Edge sources may be ids that are not vertices, e.g. a decision a task
    waits on.
    """

    nodes: set[str] = field(default_factory=set)
    edges: dict[str, set[str]] = field(default_factory=dict)

    def dependents_of(self, node_id: str) -> set[str]:
        return self.edges.get(node_id, set())


def build_dependency_graph(nodes: NodeCollection) -> DependencyGraph:
    """Build a fresh graph over every task in ``nodes``."""
    source = as_source(nodes)
    graph = DependencyGraph()

    for node in source.iter_nodes():
        if not isinstance(node, TaskNode):
            continue
        graph.nodes.add(node.id)
        for dep_id in source.list_dependencies(node.id):
            graph.edges.setdefault(dep_id, set()).add(node.id)

    return graph
