"""Read-only loader for on-disk Forge projects.

A project directory looks like::

    my-robot/
        project.json            {"name": ..., "description": ...}  (optional)
        tasks/route-pcb.md
        decisions/mcu.md
        components/...
        notes/ subsystems/ assemblies/ modules/

Each node is a markdown file with YAML frontmatter; the file stem is the
node id. Nodes are returned in directory order (``NODE_TYPE_DIRECTORIES``)
then file-name order, which is the collection order the graph engine uses.
"""

import json
import os
import re
from dataclasses import dataclass, field
from typing import Any, Optional

import yaml
from pydantic import ValidationError as PydanticValidationError

from forge_server.graph import MemoryNodeSource
from forge_server.logging_config import get_logger
from forge_server.nodes import NODE_TYPES, Node, parse_node
from forge_server.utils import iso_to_ms, parse_frontmatter

logger = get_logger(__name__)

NODE_TYPE_DIRECTORIES: dict[str, str] = {
    "decision": "decisions",
    "component": "components",
    "task": "tasks",
    "note": "notes",
    "subsystem": "subsystems",
    "assembly": "assemblies",
    "module": "modules",
}

PROJECT_CONFIG_FILE = "project.json"

_HEADING_RE = re.compile(r"^#\s+(.+)$", re.MULTILINE)
_CHECKLIST_RE = re.compile(r"^-\s+\[([ xX])\]\s+(.+)$", re.MULTILINE)

# camelCase spellings accepted for a few keys written by older tools.
_KEY_ALIASES = {
    "partNumber": "part_number",
    "customFields": "custom_fields",
    "dependsOn": "depends_on",
    "datasheetUrl": "datasheet_url",
}


@dataclass
class LoadedProject:
    id: str
    name: str
    path: str
    description: str = ""
    nodes: dict[str, Node] = field(default_factory=dict)

    @property
    def source(self) -> MemoryNodeSource:
        return MemoryNodeSource(self.nodes)


def extract_title(content: str) -> str:
    """First ``# heading`` of a markdown body, else 'Untitled'."""
    m = _HEADING_RE.search(content)
    return m.group(1).strip() if m else "Untitled"


def parse_checklist(content: str) -> list[dict[str, Any]]:
    return [
        {"text": text.strip(), "completed": mark.lower() == "x"}
        for mark, text in _CHECKLIST_RE.findall(content)
    ]


def frontmatter_to_node(meta: dict[str, Any], body: str, node_id: str) -> Optional[Node]:
    """Build a node from parsed frontmatter, or None when ``type`` is unknown.

    Raises pydantic.ValidationError when a field fails validation.
    """
    node_type = meta.get("type")
    if node_type not in NODE_TYPES:
        return None

    data: dict[str, Any] = {_KEY_ALIASES.get(k, k): v for k, v in meta.items()}
    # Derived on output, never read from disk.
    data.pop("blocks", None)

    dates = data.pop("dates", None) or {}
    created = data.pop("created", None) or dates.get("created")
    modified = data.pop("modified", None) or dates.get("modified")

    data["id"] = node_id
    data["title"] = data.get("title") or extract_title(body)
    data["content"] = body
    data["created_at"] = iso_to_ms(created)
    data["updated_at"] = iso_to_ms(modified)
    for key in ("tags", "depends_on", "requirements", "options", "criteria"):
        if key in data and data[key] is None:
            data[key] = []
    if node_type == "task":
        data["checklist"] = parse_checklist(body)

    return parse_node(data)


def load_project_metadata(project_path: str) -> dict[str, Any]:
    """Read project.json; missing or unreadable files fall back to the directory name."""
    default = {"name": os.path.basename(os.path.normpath(project_path)), "description": ""}
    config_path = os.path.join(project_path, PROJECT_CONFIG_FILE)
    if not os.path.isfile(config_path):
        return default
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            meta = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Failed to read {config_path}: {e}")
        return default
    if not isinstance(meta, dict):
        return default
    return {
        "name": meta.get("name") or default["name"],
        "description": meta.get("description") or "",
    }


def load_node_file(file_path: str) -> Optional[Node]:
    """Load one node file, or None (with a warning) if it cannot be used."""
    node_id = os.path.splitext(os.path.basename(file_path))[0]
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            raw = f.read()
        meta, body = parse_frontmatter(raw)
        node = frontmatter_to_node(meta, body, node_id)
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
        logger.warning(f"Skipping unreadable node file {file_path}: {e}")
        return None
    except PydanticValidationError as e:
        logger.warning(
            f"Skipping invalid node file {file_path}: {e.error_count()} validation error(s)"
        )
        return None

    if node is None:
        logger.warning(f"Skipping node file without a recognised type: {file_path}")
    return node


def load_project(project_path: str) -> LoadedProject:
    """Load every node of a project directory."""
    if not os.path.isdir(project_path):
        raise FileNotFoundError(f"Project directory not found: {project_path}")

    meta = load_project_metadata(project_path)
    project = LoadedProject(
        id=os.path.basename(os.path.normpath(project_path)),
        name=meta["name"],
        description=meta["description"],
        path=project_path,
    )

    for dir_name in NODE_TYPE_DIRECTORIES.values():
        dir_path = os.path.join(project_path, dir_name)
        if not os.path.isdir(dir_path):
            continue
        for file_name in sorted(os.listdir(dir_path)):
            if not file_name.endswith(".md"):
                continue
            node = load_node_file(os.path.join(dir_path, file_name))
            if node is None:
                continue
            if node.id in project.nodes:
                logger.warning(f"Duplicate node id {node.id} in {dir_path}, keeping the first")
                continue
            project.nodes[node.id] = node

    logger.debug(f"Loaded project {project.id}: {len(project.nodes)} nodes")
    return project


def is_project_dir(path: str) -> bool:
    if os.path.isfile(os.path.join(path, PROJECT_CONFIG_FILE)):
        return True
    return any(
        os.path.isdir(os.path.join(path, d)) for d in NODE_TYPE_DIRECTORIES.values()
    )


def list_projects(workspace: str) -> list[dict[str, str]]:
    """Projects found directly under ``workspace``, sorted by directory name."""
    if not os.path.isdir(workspace):
        return []

    projects = []
    for entry in sorted(os.listdir(workspace)):
        path = os.path.join(workspace, entry)
        if entry.startswith(".") or not os.path.isdir(path) or not is_project_dir(path):
            continue
        meta = load_project_metadata(path)
        projects.append(
            {"id": entry, "name": meta["name"], "description": meta["description"], "path": path}
        )
    return projects
