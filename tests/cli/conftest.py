"""Shared test fixtures for the forge CLI tests."""

import pytest
import respx
from typer.testing import CliRunner

from forge_cli.client import ForgeClient


@pytest.fixture
def runner():
    """Typer CLI runner."""
    return CliRunner()


@pytest.fixture
def mock_api():
    """respx mock router scoped to the default base URL."""
    with respx.mock(
        base_url="http://localhost:8000", assert_all_called=False
    ) as router:
        yield router


@pytest.fixture
def client():
    """ForgeClient instance."""
    c = ForgeClient(base_url="http://localhost:8000")
    yield c
    c.close()


@pytest.fixture
def project_dir(tmp_path):
    """A small project on disk: design -> order -> assemble, plus a decision."""
    root = tmp_path / "robot-arm"
    for directory, node_id, frontmatter in [
        ("tasks", "design", "type: task\ntitle: Design PCB\nstatus: complete"),
        ("tasks", "order", "type: task\ntitle: Order parts\ndepends_on: [design, motor]"),
        ("tasks", "assemble", "type: task\ntitle: Assemble\ndepends_on: [order]"),
        ("tasks", "paint", "type: task\ntitle: Paint\ndepends_on: [design]"),
        ("decisions", "motor", "type: decision\ntitle: Pick motor\nstatus: selected"),
    ]:
        (root / directory).mkdir(parents=True, exist_ok=True)
        (root / directory / f"{node_id}.md").write_text(
            f"---\n{frontmatter}\n---\n", encoding="utf-8"
        )
    return root


# ── Sample API response data matching actual server shapes ──────────


SAMPLE_STATUS = {
    "status": "ok",
    "version": "0.1.0",
    "database": "sqlite",
    "database_connected": True,
}

SAMPLE_PROJECTS = [
    {
        "id": "robot",
        "name": "Robot Arm",
        "description": "6-DOF arm",
        "created_at": 1700000000000,
        "updated_at": 1700000060000,
        "node_count": 5,
        "task_count": 3,
        "completed_task_count": 1,
    }
]


def _task(node_id: str, title: str, status: str = "pending", depends_on=None, blocks=None):
    return {
        "id": node_id,
        "type": "task",
        "title": title,
        "content": "",
        "tags": [],
        "parent": None,
        "created_at": 1700000000000,
        "updated_at": 1700000000000,
        "status": status,
        "priority": "medium",
        "depends_on": depends_on or [],
        "checklist": [],
        "milestone": None,
        "blocks": blocks or [],
    }


SAMPLE_BLOCKED = [
    _task("order", "Order parts", depends_on=["design"], blocks=["assemble"]),
]

SAMPLE_CRITICAL_PATH = [
    _task("design", "Design PCB", blocks=["order"]),
    _task("order", "Order parts", depends_on=["design"], blocks=["assemble"]),
    _task("assemble", "Assemble", depends_on=["order"]),
]

SAMPLE_DEPENDENCIES = {"depends_on": ["design"], "depended_on_by": ["assemble"]}

SAMPLE_DEPENDENCY_GRAPH = {
    "nodes": [
        {"id": "design", "title": "Design PCB", "status": "pending", "priority": "medium"},
        {"id": "order", "title": "Order parts", "status": "pending", "priority": "medium"},
    ],
    "edges": [{"from": "design", "to": "order"}],
    "critical_path": ["design", "order"],
}
