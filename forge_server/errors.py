"""Service error types.

Each error carries a stable ``code`` and the HTTP status the API answers
with. The exception handler in ``forge_server.main`` renders them as
``{"detail": ..., "code": ...}``.
"""

from typing import Optional


class ForgeError(Exception):
    """Base class for errors the API reports to clients."""

    code = "FORGE_ERROR"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code}


class NotFoundError(ForgeError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str, id: Optional[str] = None):
        super().__init__(f"{resource} not found: {id}" if id else f"{resource} not found")
        self.resource = resource
        self.id = id


class ValidationError(ForgeError):
    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class ConflictError(ForgeError):
    code = "CONFLICT"
    status_code = 409


class DependencyError(ForgeError):
    code = "DEPENDENCY_ERROR"
    status_code = 400


class DependencyCycleError(DependencyError):
    """A proposed dependency edge would close a cycle. Raised before any write."""

    code = "DEPENDENCY_CYCLE"

    def __init__(self, node_id: str, depends_on_id: str):
        super().__init__(
            f"Adding dependency on {depends_on_id} to {node_id} would create a cycle"
        )
        self.node_id = node_id
        self.depends_on_id = depends_on_id
