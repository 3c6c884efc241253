"""Integration tests for projects router."""
import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_create_project(client: AsyncClient):
    """Test creating a new project."""
    response = await client.post(
        "/v1/projects/",
        json={
            "name": "Test Project",
            "description": "A test project",
        }
    )

    assert response.status_code == 200
    data = response.json()
    assert data["id"].startswith("proj_")
    assert data["name"] == "Test Project"
    assert data["description"] == "A test project"
    assert data["created_at"] == data["updated_at"]


@pytest.mark.asyncio
async def test_create_project_with_explicit_id(client: AsyncClient):
    response = await client.post("/v1/projects/", json={"id": "rover", "name": "Rover"})
    assert response.status_code == 200
    assert response.json()["id"] == "rover"

    duplicate = await client.post("/v1/projects/", json={"id": "rover", "name": "Again"})
    assert duplicate.status_code == 409
    assert duplicate.json()["code"] == "CONFLICT"


@pytest.mark.asyncio
async def test_create_project_requires_name(client: AsyncClient):
    response = await client.post("/v1/projects/", json={"description": "no name"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_get_project(client: AsyncClient):
    """Test getting a project by ID."""
    create_response = await client.post(
        "/v1/projects/",
        json={"name": "My Project"}
    )
    project_id = create_response.json()["id"]

    response = await client.get(f"/v1/projects/{project_id}")

    assert response.status_code == 200
    data = response.json()
    assert data["id"] == project_id
    assert data["name"] == "My Project"


@pytest.mark.asyncio
async def test_get_project_not_found(client: AsyncClient):
    """Test getting non-existent project."""
    response = await client.get("/v1/projects/nonexistent")
    assert response.status_code == 404
    assert response.json() == {
        "detail": "Project not found: nonexistent",
        "code": "NOT_FOUND",
    }


@pytest.mark.asyncio
async def test_list_projects(client: AsyncClient):
    """Test listing projects."""
    await client.post("/v1/projects/", json={"name": "Project 1"})
    await client.post("/v1/projects/", json={"name": "Project 2"})

    response = await client.get("/v1/projects/")

    assert response.status_code == 200
    projects = response.json()
    assert len(projects) == 2
    assert {p["name"] for p in projects} == {"Project 1", "Project 2"}
    assert "node_count" not in projects[0]


@pytest.mark.asyncio
async def test_list_projects_with_stats(client: AsyncClient, project_id, make_node):
    await make_node("t1", status="complete")
    await make_node("t2")
    await make_node("n1", type="note")
    await client.post("/v1/projects/", json={"id": "empty", "name": "Empty"})

    response = await client.get("/v1/projects/", params={"stats": "true"})

    assert response.status_code == 200
    by_id = {p["id"]: p for p in response.json()}
    assert by_id[project_id]["node_count"] == 3
    assert by_id[project_id]["task_count"] == 2
    assert by_id[project_id]["completed_task_count"] == 1
    assert by_id["empty"]["node_count"] == 0
    assert by_id["empty"]["task_count"] == 0


@pytest.mark.asyncio
async def test_update_project(client: AsyncClient, project_id):
    """Test updating project fields."""
    response = await client.patch(
        f"/v1/projects/{project_id}",
        json={"name": "Renamed", "description": "New description"},
    )
    assert response.status_code == 200

    data = (await client.get(f"/v1/projects/{project_id}")).json()
    assert data["name"] == "Renamed"
    assert data["description"] == "New description"


@pytest.mark.asyncio
async def test_update_project_not_found(client: AsyncClient):
    response = await client.patch("/v1/projects/ghost", json={"name": "x"})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_project_removes_nodes(client: AsyncClient, project_id, make_node):
    """Deleting a project removes its nodes and edges."""
    await make_node("t1")
    await make_node("t2", depends_on=["t1"])

    response = await client.delete(f"/v1/projects/{project_id}")
    assert response.status_code == 200
    assert response.json() == {"status": "deleted"}

    assert (await client.get(f"/v1/projects/{project_id}")).status_code == 404
    assert (await client.get(f"/v1/projects/{project_id}/nodes")).status_code == 404

    # Node ids are free again
    await client.post("/v1/projects/", json={"id": "other", "name": "Other"})
    response = await client.post(
        "/v1/projects/other/nodes", json={"id": "t1", "type": "task", "title": "T1"}
    )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_status(client: AsyncClient):
    response = await client.get("/v1/status")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["database"] == "sqlite"
    assert "version" in data
