"""SQLAlchemy ORM models for Forge."""

from forge_server.models.base import Base, TimestampMixin
from forge_server.models.project import Project, Node, NodeDependency

__all__ = [
    # SQLAlchemy base
    "Base",
    "TimestampMixin",
    # SQLAlchemy models
    "Project",
    "Node",
    "NodeDependency",
]
