from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator
from pydantic.alias_generators import to_camel


class NodeType(str, Enum):
    EMAIL = "EMAIL"
    DELAY = "DELAY"
    CONDITION = "CONDITION"
    END = "END"


class AutomationStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    DRAFT = "draft"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Trigger(_CamelModel):
    id: str = Field(..., description="Editor id of the trigger step")
    type: str = Field(..., description="Event type registered in the trigger registry")
    params: Dict[str, Any] = Field(default_factory=dict, description="Scoping parameters such as listId")


class Branches(_CamelModel):
    true: str | None = Field(default=None, description="Successor when the condition holds")
    false: str | None = Field(default=None, description="Successor when the condition fails")


class Position(_CamelModel):
    x: float = 0
    y: float = 0


class WorkflowNode(_CamelModel):
    id: str
    type: str = Field(..., description="Node type identifier, e.g. EMAIL or DELAY")
    label: str = ""
    position: Position = Field(default_factory=Position)
    params: Dict[str, Any] = Field(default_factory=dict)
    next: str | None = None
    branches: Branches | None = None

    def successors(self) -> List[str]:
        ids = [self.next] if self.next else []
        if self.branches is not None:
            ids.extend(i for i in (self.branches.true, self.branches.false) if i)
        return ids


class Automation(_CamelModel):
    """
    A user-defined workflow: one trigger plus an id-keyed arena of nodes.

    Nodes reference each other by id only. ``editor_data["steps"]`` carries the
    editor's parent links and is consulted solely to find the node that
    follows the trigger.
    """

    id: str | None = None
    user_id: str = Field(..., description="Owner of the automation")
    name: str = Field(..., min_length=1, description="Human friendly name for the automation")
    is_enabled: bool = True
    status: AutomationStatus = AutomationStatus.ACTIVE
    trigger: Trigger
    nodes: Dict[str, WorkflowNode] = Field(default_factory=dict)
    editor_data: Dict[str, Any] = Field(default_factory=dict)

    _predecessors: Dict[str, List[str]] | None = PrivateAttr(default=None)

    @field_validator("nodes", mode="before")
    @classmethod
    def index_nodes_by_id(cls, value: Any) -> Any:
        # Editors send nodes as a list; store them keyed by id.
        if value is None:
            return {}
        if isinstance(value, dict):
            items = list(value.values())
        else:
            items = list(value)
        arena: Dict[str, Any] = {}
        for item in items:
            node_id = item.id if isinstance(item, WorkflowNode) else item.get("id")
            if node_id in arena:
                raise ValueError(f"Duplicate node id: {node_id}")
            arena[node_id] = item
        return arena

    def get_node(self, node_id: str) -> WorkflowNode | None:
        return self.nodes.get(node_id)

    def start_node_id(self) -> str | None:
        """Id of the editor step whose parent is the trigger, if any."""
        steps = self.editor_data.get("steps") or []
        for step in steps:
            if isinstance(step, dict) and step.get("parentId") == self.trigger.id:
                return step.get("id")
        return None

    def predecessors(self, node_id: str) -> List[str]:
        """Ids of nodes whose ``next`` or either branch points at ``node_id``."""
        if self._predecessors is None:
            index: Dict[str, List[str]] = {}
            for node in self.nodes.values():
                for successor in node.successors():
                    index.setdefault(successor, []).append(node.id)
            self._predecessors = index
        return self._predecessors.get(node_id, [])
