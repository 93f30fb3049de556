"""
Editable graph models.

The editable graph is what the canvas manipulates. A node carries its variant,
subtype, the typed configuration being edited, a bounded display-hints record
and the pass-through ``meta`` bag inherited from the domain node.
"""

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from journey_builder.models.delay_config import DelayConfiguration
from journey_builder.models.experiment_config import ExperimentConfiguration
from journey_builder.models.goal_config import ConditionConfiguration, GoalConfiguration
from journey_builder.models.journey import ActionPayload, Position, TriggerPayload
from journey_builder.models.trigger_config import TriggerConfiguration


class NodeVariant(str, Enum):
    """Canvas-level node kinds."""
    TRIGGER = "trigger"
    ACTION = "action"
    DECISION = "decision"
    WAIT = "wait"
    GOAL = "goal"
    EXPERIMENT = "experiment"


class DisplayHints(BaseModel):
    """Derived, display-only values. Never authoritative."""
    summary: Optional[str] = None
    isConfigured: bool = False
    status: Optional[Literal["draft", "active"]] = None
    userCount: Optional[int] = None


class GraphNodeData(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    label: str = "Node"
    description: Optional[str] = None
    variant: NodeVariant = NodeVariant.ACTION
    subtype: str = ""
    icon: Optional[str] = None
    hints: DisplayHints = Field(default_factory=DisplayHints)
    meta: Dict[str, Any] = Field(default_factory=dict)
    triggerConfig: Optional[TriggerConfiguration] = None
    trigger: Optional[TriggerPayload] = None
    action: Optional[ActionPayload] = None
    delayConfig: Optional[DelayConfiguration] = None
    conditionConfig: Optional[ConditionConfiguration] = None
    experimentConfig: Optional[ExperimentConfiguration] = None
    goalConfig: Optional[GoalConfiguration] = None


class GraphNode(BaseModel):
    id: str
    position: Position = Field(default_factory=Position)
    data: GraphNodeData = Field(default_factory=GraphNodeData)

    @property
    def variant(self) -> str:
        return self.data.variant

    def to_dict(self) -> Dict[str, Any]:
        data = self.model_dump(mode="json", exclude_none=True, exclude={"data": {"triggerConfig"}})
        if self.data.triggerConfig is not None:
            data["data"]["triggerConfig"] = self.data.triggerConfig.to_dict()
        return data


class GraphEdge(BaseModel):
    id: str
    source: str
    target: str
    sourceHandle: Optional[str] = None
    label: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class JourneyGraph(BaseModel):
    """Nodes and edges as edited on the canvas."""
    nodes: List[GraphNode] = Field(default_factory=list)
    edges: List[GraphEdge] = Field(default_factory=list)

    def node_by_id(self, node_id: str) -> Optional[GraphNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
        }
