"""Project, node and dependency endpoints.

This module combines project sub-routers into a single router:
- core.py: Project CRUD (create, list, get, update, delete)
- nodes.py: Node CRUD and list filters
- dependencies.py: Node dependencies, cycle checks and graph analytics
"""

from fastapi import APIRouter

from .core import router as core_router
from .nodes import router as nodes_router
from .dependencies import router as dependencies_router

from ._common import get_project_or_404, get_node_or_404

router = APIRouter()

# Include sub-routers (no prefix needed - paths are already correct)
router.include_router(core_router)
router.include_router(nodes_router)
router.include_router(dependencies_router)

__all__ = [
    "router",
    "get_project_or_404",
    "get_node_or_404",
]
