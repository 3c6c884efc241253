"""initial_forge_schema

Creates the projects, nodes and node_dependencies tables. Node collection
order within a project is kept in ``nodes.seq``; the ordered ``depends_on``
list of a task is kept in ``node_dependencies.position``.

Revision ID: a0f1c2d3e4b5
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "a0f1c2d3e4b5"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── projects ──────────────────────────────────────────────────────────────
    op.create_table(
        "projects",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=256), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("created_at", sa.BigInteger(), nullable=False),
        sa.Column("updated_at", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    # ── nodes ─────────────────────────────────────────────────────────────────
    op.create_table(
        "nodes",
        sa.Column("id", sa.String(length=128), nullable=False),
        sa.Column("project_id", sa.String(length=64), nullable=False),
        sa.Column("seq", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("title", sa.String(length=512), nullable=False),
        sa.Column("content", sa.Text(), nullable=False, server_default=""),
        sa.Column("status", sa.String(length=32), nullable=True),
        sa.Column("priority", sa.String(length=16), nullable=True),
        sa.Column("parent_id", sa.String(length=128), nullable=True),
        sa.Column("milestone", sa.String(length=256), nullable=True),
        # JSON array
        sa.Column("tags", sa.Text(), nullable=False, server_default="[]"),
        # JSON object of type-specific fields
        sa.Column("extra", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("created_at", sa.BigInteger(), nullable=False),
        sa.Column("updated_at", sa.BigInteger(), nullable=False),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("project_id", "seq", name="uq_nodes_project_seq"),
    )
    op.create_index("idx_nodes_project", "nodes", ["project_id"])
    op.create_index("idx_nodes_type", "nodes", ["type"])
    op.create_index("idx_nodes_status", "nodes", ["status"])
    op.create_index("idx_nodes_parent", "nodes", ["parent_id"])

    # ── node_dependencies ─────────────────────────────────────────────────────
    op.create_table(
        "node_dependencies",
        sa.Column("node_id", sa.String(length=128), nullable=False),
        sa.Column("depends_on_id", sa.String(length=128), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.ForeignKeyConstraint(["node_id"], ["nodes.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["depends_on_id"], ["nodes.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("node_id", "depends_on_id"),
    )
    op.create_index(
        "idx_node_deps_depends_on", "node_dependencies", ["depends_on_id"]
    )


def downgrade() -> None:
    op.drop_index("idx_node_deps_depends_on", table_name="node_dependencies")
    op.drop_table("node_dependencies")
    op.drop_index("idx_nodes_parent", table_name="nodes")
    op.drop_index("idx_nodes_status", table_name="nodes")
    op.drop_index("idx_nodes_type", table_name="nodes")
    op.drop_index("idx_nodes_project", table_name="nodes")
    op.drop_table("nodes")
    op.drop_table("projects")
