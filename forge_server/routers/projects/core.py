"""Core project CRUD endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from forge_server import store
from forge_server.database import get_async_session
from forge_server.errors import ConflictError
from forge_server.logging_config import get_logger
from forge_server.models import Node, Project
from forge_server.utils import gen_id, now_ms

from ._common import (
    get_project_or_404,
    _serialize_project,
    get_project_write_session,
    CreateProjectRequest,
    UpdateProjectRequest,
)

logger = get_logger(__name__)
router = APIRouter()


@router.post("/")
async def create_project(
    req: CreateProjectRequest, session: AsyncSession = Depends(get_async_session)
):
    """Create a new, empty project."""
    logger.debug(f"Creating project: name={req.name}, id={req.id}")
    project_id = req.id or gen_id("proj_")
    if await session.get(Project, project_id) is not None:
        raise ConflictError(f"Project already exists: {project_id}")

    now = now_ms()
    project = Project(
        id=project_id,
        name=req.name,
        description=req.description,
        created_at=now,
        updated_at=now,
    )
    session.add(project)
    await session.flush()

    logger.info(f"Created project: project_id={project_id}")
    return _serialize_project(project)


@router.get("/")
async def list_projects(
    stats: bool = False, session: AsyncSession = Depends(get_async_session)
):
    """List all projects, most recently updated first.

    With ``stats=true`` each project also reports node, task and completed
    task counts.
    """
    logger.debug(f"Listing projects, stats={stats}")
    result = await session.execute(
        select(Project).order_by(Project.updated_at.desc(), Project.id)
    )
    projects = result.scalars().all()
    response = [_serialize_project(p) for p in projects]

    if stats:
        count_result = await session.execute(
            select(
                Node.project_id,
                func.count(Node.id),
                func.sum(case((Node.type == "task", 1), else_=0)),
                func.sum(
                    case(((Node.type == "task") & (Node.status == "complete"), 1), else_=0)
                ),
            ).group_by(Node.project_id)
        )
        counts = {
            project_id: (total, tasks or 0, completed or 0)
            for project_id, total, tasks, completed in count_result.all()
        }
        for item in response:
            total, tasks, completed = counts.get(item["id"], (0, 0, 0))
            item["node_count"] = total
            item["task_count"] = tasks
            item["completed_task_count"] = completed

    return response


@router.get("/{project_id}")
async def get_project(
    project_id: str, session: AsyncSession = Depends(get_async_session)
):
    """Get a single project."""
    logger.debug(f"Getting project: project_id={project_id}")
    project = await get_project_or_404(session, project_id)
    return _serialize_project(project)


@router.patch("/{project_id}")
async def update_project(
    project_id: str,
    req: UpdateProjectRequest,
    session: AsyncSession = Depends(get_async_session),
):
    """Update project name and/or description."""
    logger.debug(f"Updating project: project_id={project_id}")
    project = await get_project_or_404(session, project_id)

    if req.name is not None:
        project.name = req.name
    if req.description is not None:
        project.description = req.description
    project.updated_at = now_ms()
    await session.flush()

    return _serialize_project(project)


@router.delete("/{project_id}")
async def delete_project(
    project_id: str, session: AsyncSession = Depends(get_project_write_session)
):
    """Delete a project with all of its nodes and dependencies."""
    logger.debug(f"Deleting project: project_id={project_id}")
    await store.delete_project(session, project_id)
    return {"status": "deleted"}
