"""
Journey domain models.

This is the persisted shape of a journey. Every node is tagged by ``type`` and
owns exactly one typed payload. ``data`` is an open bag of UI annotations and
the legacy trigger mirror; it is never read for execution semantics.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from journey_builder.models.delay_config import DelayConfiguration
from journey_builder.models.experiment_config import ExperimentConfiguration
from journey_builder.models.goal_config import GoalConfiguration
from journey_builder.models.trigger_config import TriggerConfiguration
from journey_builder.utils.constants import DEFAULT_JOURNEY_STATUS, DEFAULT_TIMEZONE, JOURNEY_STATUSES

Number = Union[int, float]


class JourneyStatus(str, Enum):
    """Journey lifecycle status."""
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"


class NodeType(str, Enum):
    """Execution-relevant node types."""
    TRIGGER = "trigger"
    ACTION = "action"
    DELAY = "delay"
    CONDITION = "condition"
    GOAL = "goal"
    EXIT = "exit"


class Position(BaseModel):
    x: float = 0
    y: float = 0


# Node payloads
class TriggerPayload(BaseModel):
    """Minimal trigger description consumed by the execution engine."""
    type: str = "manual"
    segmentId: Optional[str] = None
    tag: Optional[str] = None
    productId: Optional[str] = None
    hours: Optional[Number] = None
    webhookEvent: Optional[str] = None
    data: Optional[Dict[str, Any]] = None


class SendWindow(BaseModel):
    startHour: int = Field(default=9, ge=0, le=23)
    endHour: int = Field(default=21, ge=0, le=23)


class ActionPayload(BaseModel):
    kind: Literal["whatsapp_template", "add_tag", "update_property", "create_task"] = "whatsapp_template"
    templateName: str = "WhatsApp Template"
    language: str = "en"
    variables: Dict[str, str] = Field(default_factory=dict)
    sendWindow: Optional[SendWindow] = None
    fallbackText: Optional[str] = None


class DelayPayload(BaseModel):
    unit: Literal["minutes", "hours", "days"] = "hours"
    value: Number = 24
    config: Optional[DelayConfiguration] = None


class ConditionArgs(BaseModel):
    join: Literal["all", "any"] = "all"
    conditions: List[Dict[str, Any]] = Field(default_factory=list)
    trueLabel: Optional[str] = None
    falseLabel: Optional[str] = None


class ConditionPayload(BaseModel):
    kind: str = "custom_condition"
    args: ConditionArgs = Field(default_factory=ConditionArgs)


class GoalPayload(BaseModel):
    description: Optional[str] = None
    config: Optional[GoalConfiguration] = None


# Nodes
class BaseJourneyNode(BaseModel):
    id: str
    position: Position = Field(default_factory=Position)
    name: Optional[str] = None
    description: Optional[str] = None
    subtype: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the persisted JSON shape."""
        return self.model_dump(mode="json", exclude_none=True)


class TriggerNode(BaseJourneyNode):
    type: Literal["trigger"] = "trigger"
    trigger: TriggerPayload = Field(default_factory=TriggerPayload)
    triggerConfiguration: Optional[TriggerConfiguration] = None

    def to_dict(self) -> Dict[str, Any]:
        data = self.model_dump(mode="json", exclude_none=True, exclude={"triggerConfiguration"})
        if self.triggerConfiguration is not None:
            data["triggerConfiguration"] = self.triggerConfiguration.to_dict()
        return data


class ActionNode(BaseJourneyNode):
    type: Literal["action"] = "action"
    action: ActionPayload = Field(default_factory=ActionPayload)


class DelayNode(BaseJourneyNode):
    type: Literal["delay"] = "delay"
    delay: DelayPayload = Field(default_factory=DelayPayload)


class ConditionNode(BaseJourneyNode):
    """Decision node; ``subtype == "ab_test"`` nodes carry an experiment instead."""
    type: Literal["condition"] = "condition"
    condition: Optional[ConditionPayload] = None
    experiment: Optional[ExperimentConfiguration] = None


class GoalNode(BaseJourneyNode):
    type: Literal["goal"] = "goal"
    goal: GoalPayload = Field(default_factory=GoalPayload)


class ExitNode(BaseJourneyNode):
    type: Literal["exit"] = "exit"


JourneyNode = Annotated[
    Union[TriggerNode, ActionNode, DelayNode, ConditionNode, GoalNode, ExitNode],
    Field(discriminator="type"),
]

NODE_CLASSES = {
    NodeType.TRIGGER.value: TriggerNode,
    NodeType.ACTION.value: ActionNode,
    NodeType.DELAY.value: DelayNode,
    NodeType.CONDITION.value: ConditionNode,
    NodeType.GOAL.value: GoalNode,
    NodeType.EXIT.value: ExitNode,
}


class JourneyEdge(BaseModel):
    id: str
    source: str
    target: str
    sourceHandle: Optional[str] = None
    label: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


# Journey-level settings
class EntrySettings(BaseModel):
    frequency: Literal["once", "multiple"] = "once"
    segmentId: Optional[str] = None
    maxEntries: Optional[int] = None


class ExitSettings(BaseModel):
    onGoal: bool = True
    autoExitAfterDays: Optional[int] = None


class JourneySettings(BaseModel):
    entry: EntrySettings = Field(default_factory=EntrySettings)
    exit: ExitSettings = Field(default_factory=ExitSettings)
    allowReentry: bool = False
    reentryCooldownDays: Number = 0
    timezone: str = DEFAULT_TIMEZONE
    testMode: bool = False
    testPhoneNumbers: List[str] = Field(default_factory=list)
    goalDescription: Optional[str] = None


class ReEntryRules(BaseModel):
    allow: bool = False
    cooldownDays: Number = 0


class JourneyConfig(BaseModel):
    reEntryRules: ReEntryRules = Field(default_factory=ReEntryRules)
    maxEnrollments: Optional[Number] = None
    timezone: str = DEFAULT_TIMEZONE

    model_config = ConfigDict(extra="allow")


class JourneyStats(BaseModel):
    """Read-only aggregate counters maintained by the storage service."""
    totalEnrollments: Number = 0
    activeEnrollments: Number = 0
    completedEnrollments: Number = 0
    goalConversionRate: Number = 0

    model_config = ConfigDict(extra="allow")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class Journey(BaseModel):
    """Persisted journey definition."""

    model_config = ConfigDict(use_enum_values=True)

    id: str
    name: str = "Untitled journey"
    description: Optional[str] = None
    status: JourneyStatus = JourneyStatus.DRAFT
    settings: JourneySettings = Field(default_factory=JourneySettings)
    config: JourneyConfig = Field(default_factory=JourneyConfig)
    stats: JourneyStats = Field(default_factory=JourneyStats)
    nodes: List[JourneyNode] = Field(default_factory=list)
    edges: List[JourneyEdge] = Field(default_factory=list)
    createdAt: Union[str, int, float] = Field(default_factory=_now_iso)
    updatedAt: Optional[Union[str, int, float]] = None
    storeId: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def coerce_status(cls, v):
        """Unknown statuses are read as DRAFT."""
        if isinstance(v, JourneyStatus):
            return v
        if isinstance(v, str) and v.upper() in JOURNEY_STATUSES:
            return v.upper()
        return DEFAULT_JOURNEY_STATUS

    def node_by_id(self, node_id: str) -> Optional[BaseJourneyNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the persisted JSON shape."""
        data = self.model_dump(mode="json", exclude_none=True, exclude={"nodes", "edges"})
        data["config"].setdefault("maxEnrollments", None)
        data["nodes"] = [node.to_dict() for node in self.nodes]
        data["edges"] = [edge.to_dict() for edge in self.edges]
        return data
