"""Shared utilities, models, and helpers for project routers."""

from __future__ import annotations

from typing import Any, AsyncIterator, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from forge_server import store
from forge_server.database import get_async_session
from forge_server.errors import NotFoundError, ValidationError
from forge_server.graph import NodeSource
from forge_server.logging_config import get_logger
from forge_server.models import Project
from forge_server.nodes import Node, NodeType, parse_node
from forge_server.utils import gen_node_id

logger = get_logger(__name__)

__all__ = [
    # Router
    "router",
    # Logger
    "logger",
    # Pydantic Models
    "CreateProjectRequest",
    "UpdateProjectRequest",
    "CreateNodeRequest",
    "UpdateNodeRequest",
    "AddDependencyRequest",
    # Helper functions
    "get_project_or_404",
    "get_node_or_404",
    "build_node",
    "get_project_write_session",
    "_serialize_project",
]

router = APIRouter()


# ══════════════════════════════════════════════════════════════════════════
# PYDANTIC MODELS
# ══════════════════════════════════════════════════════════════════════════


class CreateProjectRequest(BaseModel):
    id: Optional[str] = Field(default=None, min_length=1, max_length=64)
    name: str = Field(min_length=1)
    description: str = ""


class UpdateProjectRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None


class CreateNodeRequest(BaseModel):
    """Node body. Type-specific fields pass through to the node model."""

    model_config = ConfigDict(extra="allow")

    type: NodeType
    id: Optional[str] = Field(default=None, min_length=1, max_length=128)
    title: str = "Untitled"


class UpdateNodeRequest(BaseModel):
    """Partial node update; any node field may be supplied."""

    model_config = ConfigDict(extra="allow")


class AddDependencyRequest(BaseModel):
    depends_on_id: str = Field(min_length=1)


# ══════════════════════════════════════════════════════════════════════════
# HELPER FUNCTIONS
# ══════════════════════════════════════════════════════════════════════════


async def get_project_write_session(
    project_id: str, session: AsyncSession = Depends(get_async_session)
) -> AsyncIterator[AsyncSession]:
    """Request session holding the project's write lock until it commits."""
    async with store.project_write_lock(session, project_id):
        yield session


async def get_project_or_404(session: AsyncSession, project_id: str) -> Project:
    """Get project by ID or raise NotFoundError (404)."""
    return await store.get_project(session, project_id)


def get_node_or_404(source: NodeSource, node_id: str) -> Node:
    """Get node from a loaded snapshot or raise NotFoundError (404)."""
    node = source.get_node(node_id)
    if node is None:
        raise NotFoundError("Node", node_id)
    return node


def build_node(req: CreateNodeRequest) -> Node:
    """Validate a create request into a node, generating an id if missing."""
    data: dict[str, Any] = req.model_dump(mode="json", exclude_none=True)
    data.pop("blocks", None)
    data["id"] = req.id or gen_node_id(req.type.value, req.title)
    try:
        return parse_node(data)
    except ValueError as e:
        raise ValidationError(str(e)) from e


def _serialize_project(project: Project) -> dict:
    """Serialize a Project model to dict."""
    return {
        "id": project.id,
        "name": project.name,
        "description": project.description,
        "created_at": project.created_at,
        "updated_at": project.updated_at,
    }

