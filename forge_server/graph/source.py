"""Read-only node sources the dependency engine runs against.

The engine never touches storage. It asks a ``NodeSource`` for nodes in
collection order and for the dependency lists between them. The in-memory
source reads dependencies from ``TaskNode.depends_on``; the SQL source reads
them from ``node_dependencies`` rows loaded in one transaction.
"""

from __future__ import annotations

from typing import Iterable, Iterator, Mapping, Optional, Protocol, Union, runtime_checkable

from forge_server.nodes import Node, TaskNode


@runtime_checkable
class NodeSource(Protocol):
    """Repository capability the engine needs."""

    def iter_nodes(self) -> Iterator[Node]: ...

    def get_node(self, node_id: str) -> Optional[Node]: ...

    def list_dependencies(self, node_id: str) -> list[str]: ...

    def list_dependents(self, node_id: str) -> list[str]: ...


NodeCollection = Union[NodeSource, Mapping[str, Node], Iterable[Node]]


class IndexedNodeSource:
    """Snapshot of ordered nodes plus a dependency index in both directions."""

    def __init__(self, nodes: Iterable[Node], dependencies: Mapping[str, list[str]]):
        self._nodes: dict[str, Node] = {}
        for node in nodes:
            self._nodes[node.id] = node

        self._dependencies: dict[str, list[str]] = {
            node_id: list(dict.fromkeys(dep_ids))
            for node_id, dep_ids in dependencies.items()
        }

        # Dependents follow collection order of the depending node.
        self._dependents: dict[str, list[str]] = {}
        for node_id in self._nodes:
            for dep_id in self._dependencies.get(node_id, []):
                self._dependents.setdefault(dep_id, []).append(node_id)

    def __len__(self) -> int:
        return len(self._nodes)

    def iter_nodes(self) -> Iterator[Node]:
        return iter(self._nodes.values())

    def get_node(self, node_id: str) -> Optional[Node]:
        return self._nodes.get(node_id)

    def list_dependencies(self, node_id: str) -> list[str]:
        return list(self._dependencies.get(node_id, []))

    def list_dependents(self, node_id: str) -> list[str]:
        return list(self._dependents.get(node_id, []))


class MemoryNodeSource(IndexedNodeSource):
    """Node source over an in-memory collection (e.g. a loaded project directory)."""

    def __init__(self, nodes: Union[Mapping[str, Node], Iterable[Node]]):
        ordered = list(nodes.values()) if isinstance(nodes, Mapping) else list(nodes)
        super().__init__(
            ordered,
            {n.id: n.depends_on for n in ordered if isinstance(n, TaskNode)},
        )


class SqlNodeSource(IndexedNodeSource):
    """Node source over rows loaded from the ``nodes`` / ``node_dependencies`` tables.

    ``edges`` are ``(node_id, depends_on_id)`` pairs already sorted by the
    dependent's position column.
    """

    def __init__(self, nodes: Iterable[Node], edges: Iterable[tuple[str, str]]):
        dependencies: dict[str, list[str]] = {}
        for node_id, depends_on_id in edges:
            dependencies.setdefault(node_id, []).append(depends_on_id)
        super().__init__(nodes, dependencies)


def as_source(nodes: NodeCollection) -> NodeSource:
    """Wrap a plain mapping or sequence of nodes; pass sources through."""
    if isinstance(nodes, NodeSource):
        return nodes
    return MemoryNodeSource(nodes)
