"""HTTP client for the Forge API."""

from typing import Optional

import httpx


class ForgeClient:
    """Client for communicating with the Forge API server.

    All endpoints use the /v1/ prefix matching the FastAPI server routes.
    Non-2xx responses raise ``httpx.HTTPStatusError``.
    """

    def __init__(self, base_url: str = "http://localhost:8000"):
        self.base_url = base_url.rstrip("/")
        self._client: Optional[httpx.Client] = None

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.base_url,
                timeout=30.0,
                follow_redirects=True,
            )
        return self._client

    def close(self):
        if self._client is not None:
            self._client.close()
            self._client = None

    def _get(self, path: str, params: Optional[dict] = None):
        response = self.client.get(path, params=params)
        response.raise_for_status()
        return response.json()

    # ── Status ──────────────────────────────────────────────────────────

    def get_status(self) -> dict:
        """Get server health status."""
        return self._get("/v1/status")

    # ── Projects ────────────────────────────────────────────────────────

    def list_projects(self, stats: bool = False) -> list[dict]:
        """List all projects, optionally with node counts."""
        params = {"stats": "true"} if stats else None
        return self._get("/v1/projects/", params=params)

    def get_project(self, project_id: str) -> dict:
        return self._get(f"/v1/projects/{project_id}")

    def list_nodes(self, project_id: str, **filters: str) -> list[dict]:
        """List project nodes; keyword filters map to query parameters."""
        params = {k: v for k, v in filters.items() if v is not None}
        return self._get(f"/v1/projects/{project_id}/nodes", params=params or None)

    # ── Dependencies ────────────────────────────────────────────────────

    def get_dependencies(self, project_id: str, node_id: str) -> dict:
        return self._get(f"/v1/projects/{project_id}/nodes/{node_id}/dependencies")

    def check_dependency(self, project_id: str, node_id: str, depends_on_id: str) -> bool:
        """Dry-run cycle check for a proposed dependency."""
        result = self._get(
            f"/v1/projects/{project_id}/nodes/{node_id}/dependencies/check",
            params={"depends_on_id": depends_on_id},
        )
        return bool(result.get("would_create_cycle"))

    def add_dependency(self, project_id: str, node_id: str, depends_on_id: str) -> dict:
        response = self.client.post(
            f"/v1/projects/{project_id}/nodes/{node_id}/dependencies",
            json={"depends_on_id": depends_on_id},
        )
        response.raise_for_status()
        return response.json()

    def remove_dependency(self, project_id: str, node_id: str, depends_on_id: str) -> dict:
        response = self.client.delete(
            f"/v1/projects/{project_id}/nodes/{node_id}/dependencies/{depends_on_id}"
        )
        response.raise_for_status()
        return response.json()

    # ── Analytics ───────────────────────────────────────────────────────

    def get_blocked_tasks(self, project_id: str) -> list[dict]:
        return self._get(f"/v1/projects/{project_id}/blocked-tasks")

    def get_critical_path(self, project_id: str) -> list[dict]:
        return self._get(f"/v1/projects/{project_id}/critical-path")

    def get_would_unblock(self, project_id: str, node_id: str) -> list[dict]:
        return self._get(f"/v1/projects/{project_id}/nodes/{node_id}/would-unblock")

    def get_dependency_graph(self, project_id: str) -> dict:
        return self._get(f"/v1/projects/{project_id}/dependency-graph")
