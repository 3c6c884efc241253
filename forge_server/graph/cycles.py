"""Cycle detection for proposed dependency edges."""

from __future__ import annotations

from forge_server.graph.builder import DependencyGraph
from forge_server.logging_config import get_logger

logger = get_logger(__name__)


def would_create_cycle(graph: DependencyGraph, dependency_id: str, dependent_id: str) -> bool:
    """Check whether making ``dependent_id`` depend on ``dependency_id`` closes a cycle.

    Adding edge dependency -> dependent creates a cycle iff the dependent can
    already reach the dependency along forward edges. A self-dependency is
    always a cycle.
    """
    visited: set[str] = set()
    stack = [dependent_id]

    while stack:
        current = stack.pop()
        if current == dependency_id:
            logger.debug(f"Cycle found: {dependency_id} is reachable from {dependent_id}")
            return True
        if current in visited:
            continue
        visited.add(current)
        stack.extend(graph.dependents_of(current) - visited)

    return False
