"""Store-level tests: concurrent writers on one project."""
import asyncio

import pytest
from sqlalchemy import select

from forge_server import models, store
from forge_server.errors import DependencyCycleError
from forge_server.nodes import parse_node


async def _seed(session_factory, project_id="p", node_ids=("a", "b")):
    async with session_factory() as session:
        async with store.project_write_lock(session, project_id):
            session.add(
                models.Project(id=project_id, name="P", description="", created_at=1, updated_at=1)
            )
            await session.flush()
            for node_id in node_ids:
                await store.create_node(
                    session, project_id, parse_node({"id": node_id, "type": "task", "title": node_id})
                )


async def _add(session_factory, node_id, depends_on_id, project_id="p"):
    async with session_factory() as session:
        async with store.project_write_lock(session, project_id):
            await store.add_dependency(session, project_id, node_id, depends_on_id)


async def _edges(session_factory):
    async with session_factory() as session:
        result = await session.execute(
            select(models.NodeDependency.node_id, models.NodeDependency.depends_on_id)
        )
        return sorted(tuple(row) for row in result.all())


@pytest.mark.asyncio
async def test_concurrent_opposite_edges_only_one_commits(session_factory):
    await _seed(session_factory)

    results = await asyncio.gather(
        _add(session_factory, "a", "b"),
        _add(session_factory, "b", "a"),
        return_exceptions=True,
    )

    errors = [r for r in results if isinstance(r, BaseException)]
    assert len(errors) == 1
    assert isinstance(errors[0], DependencyCycleError)
    edges = await _edges(session_factory)
    assert len(edges) == 1
    assert edges[0] in {("a", "b"), ("b", "a")}


@pytest.mark.asyncio
async def test_concurrent_three_node_cycle_rejected(session_factory):
    await _seed(session_factory, node_ids=("a", "b", "c"))

    results = await asyncio.gather(
        _add(session_factory, "b", "a"),
        _add(session_factory, "c", "b"),
        _add(session_factory, "a", "c"),
        return_exceptions=True,
    )

    assert sum(isinstance(r, DependencyCycleError) for r in results) == 1
    assert len(await _edges(session_factory)) == 2


@pytest.mark.asyncio
async def test_write_lock_rolls_back_and_releases_on_error(session_factory):
    await _seed(session_factory)
    await _add(session_factory, "a", "b")

    with pytest.raises(DependencyCycleError):
        await _add(session_factory, "b", "a")

    assert await _edges(session_factory) == [("a", "b")]
    assert "p" not in store._project_locks

    # A later writer is not blocked by the failed one.
    async with session_factory() as session:
        async with store.project_write_lock(session, "p"):
            await store.remove_dependency(session, "p", "a", "b")
    assert await _edges(session_factory) == []
