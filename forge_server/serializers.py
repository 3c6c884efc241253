"""JSON shapes for nodes.

Both stores serialize through here so the same project state produces the
same bytes no matter where it was loaded from.
"""

from typing import Any, Iterable, Optional

from forge_server.graph.source import NodeSource
from forge_server.nodes import Node, TaskNode


def serialize_node(node: Node, source: Optional[NodeSource] = None) -> dict[str, Any]:
    """Serialize a node; tasks get a ``blocks`` list derived from ``source``."""
    data = node.model_dump(mode="json")
    if isinstance(node, TaskNode):
        data["blocks"] = source.list_dependents(node.id) if source is not None else []
    return data


def serialize_nodes(nodes: Iterable[Node], source: Optional[NodeSource] = None) -> list[dict[str, Any]]:
    return [serialize_node(n, source) for n in nodes]
