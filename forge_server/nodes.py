"""Project node model.

Nodes form a closed tagged union discriminated on ``type``. Each variant
carries its own status vocabulary; only tasks carry dependencies.

Usage:
    from forge_server.nodes import parse_node, TaskNode
    node = parse_node({"id": "t1", "type": "task", "title": "Route PCB"})
    assert isinstance(node, TaskNode)
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union, assert_never

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator


class NodeType(str, Enum):
    """Every kind of node a project can hold."""

    TASK = "task"
    DECISION = "decision"
    COMPONENT = "component"
    NOTE = "note"
    SUBSYSTEM = "subsystem"
    ASSEMBLY = "assembly"
    MODULE = "module"


NODE_TYPES: list[str] = [t.value for t in NodeType]

TaskStatus = Literal["pending", "in_progress", "complete", "blocked"]
DecisionStatus = Literal["pending", "selected", "superseded"]
ComponentStatus = Literal["pending", "ordered", "received", "installed"]
ContainerStatus = Literal["planning", "in_progress", "complete", "on_hold"]
Priority = Literal["high", "medium", "low"]


class ChecklistItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    completed: bool = False


class BaseNode(BaseModel):
    """Fields shared by every node variant."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(min_length=1)
    title: str = "Untitled"
    content: str = ""
    tags: list[str] = []
    parent: Optional[str] = None
    created_at: Optional[int] = None
    updated_at: Optional[int] = None


class TaskNode(BaseNode):
    type: Literal["task"] = "task"
    status: TaskStatus = "pending"
    priority: Priority = "medium"
    depends_on: list[str] = []
    checklist: list[ChecklistItem] = []
    milestone: Optional[str] = None

    @field_validator("depends_on")
    @classmethod
    def dedupe_depends_on(cls, v: list[str]) -> list[str]:
        """Drop repeated ids, keeping the first occurrence."""
        return list(dict.fromkeys(v))


class DecisionNode(BaseNode):
    type: Literal["decision"] = "decision"
    status: DecisionStatus = "pending"
    selected: Optional[str] = None
    selection_rationale: Optional[str] = None
    options: list[dict[str, Any]] = []
    criteria: list[dict[str, Any]] = []


class ComponentNode(BaseNode):
    type: Literal["component"] = "component"
    status: ComponentStatus = "pending"
    cost: Optional[float] = None
    supplier: Optional[str] = None
    part_number: Optional[str] = None
    datasheet_url: Optional[str] = None
    custom_fields: dict[str, Union[str, float]] = {}


class NoteNode(BaseNode):
    type: Literal["note"] = "note"


class SubsystemNode(BaseNode):
    type: Literal["subsystem"] = "subsystem"
    status: ContainerStatus = "planning"
    description: Optional[str] = None
    requirements: list[str] = []


class AssemblyNode(BaseNode):
    type: Literal["assembly"] = "assembly"
    status: ContainerStatus = "planning"
    description: Optional[str] = None
    requirements: list[str] = []


class ModuleNode(BaseNode):
    type: Literal["module"] = "module"
    status: ContainerStatus = "planning"
    description: Optional[str] = None
    requirements: list[str] = []


Node = Annotated[
    Union[
        TaskNode,
        DecisionNode,
        ComponentNode,
        NoteNode,
        SubsystemNode,
        AssemblyNode,
        ModuleNode,
    ],
    Field(discriminator="type"),
]

_node_adapter: TypeAdapter[Node] = TypeAdapter(Node)

# Keys that only exist on one variant. Used to split stored rows into the
# common columns and the per-type ``extra`` blob.
COMMON_FIELDS: frozenset[str] = frozenset(BaseNode.model_fields) | {"type", "status"}


def parse_node(data: dict[str, Any]) -> Node:
    """Validate a raw mapping into the matching node variant.

    Raises pydantic.ValidationError on an unknown ``type`` or bad field.
    """
    return _node_adapter.validate_python(data)


def node_status(node: Node) -> Optional[str]:
    """Status of a node, or None for variants without one."""
    match node:
        case NoteNode():
            return None
        case (
            TaskNode()
            | DecisionNode()
            | ComponentNode()
            | SubsystemNode()
            | AssemblyNode()
            | ModuleNode()
        ):
            return node.status
        case _:
            assert_never(node)


def type_specific_fields(node: Node) -> dict[str, Any]:
    """Fields of ``node`` that are not shared by every variant."""
    dumped = node.model_dump(mode="json")
    return {k: v for k, v in dumped.items() if k not in COMMON_FIELDS}
