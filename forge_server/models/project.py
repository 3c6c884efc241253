"""Project and node models."""

from typing import Optional
from sqlalchemy import (
    String,
    Text,
    Integer,
    ForeignKey,
    Index,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from forge_server.models.base import Base, TimestampMixin


class Project(Base, TimestampMixin):
    """Project entity."""

    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Relationships
    nodes: Mapped[list["Node"]] = relationship(
        back_populates="project", cascade="all, delete-orphan"
    )


class Node(Base, TimestampMixin):
    """Any project node: task, decision, component, note or container."""

    __tablename__ = "nodes"
    __table_args__ = (
        Index("idx_nodes_project", "project_id"),
        Index("idx_nodes_type", "type"),
        Index("idx_nodes_status", "status"),
        Index("idx_nodes_parent", "parent_id"),
        UniqueConstraint("project_id", "seq", name="uq_nodes_project_seq"),
    )

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    project_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    # Insertion counter within the project; defines collection order.
    seq: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    priority: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    parent_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    milestone: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    tags: Mapped[str] = mapped_column(Text, nullable=False, default="[]")  # JSON array
    # Type-specific fields (checklist, supplier, selected option, ...)
    extra: Mapped[str] = mapped_column(Text, nullable=False, default="{}")  # JSON object

    # Relationships
    project: Mapped["Project"] = relationship(back_populates="nodes")


class NodeDependency(Base):
    """Edge: ``node_id`` depends on ``depends_on_id``."""

    __tablename__ = "node_dependencies"
    __table_args__ = (
        Index("idx_node_deps_depends_on", "depends_on_id"),
    )

    node_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("nodes.id", ondelete="CASCADE"), primary_key=True
    )
    depends_on_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("nodes.id", ondelete="CASCADE"), primary_key=True
    )
    # Position within the dependent's ordered depends_on list.
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
