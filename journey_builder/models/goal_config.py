"""
Goal and condition configuration models.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from journey_builder.models.delay_config import Duration
from journey_builder.utils.constants import DEFAULT_FALSE_LABEL, DEFAULT_TRUE_LABEL


class GoalConfiguration(BaseModel):
    """Conversion goal tracked by a goal node."""
    goalType: str = "journey_completion"
    goalName: str = "Journey Completed"
    goalDescription: Optional[str] = None
    goalCategory: Literal["conversion", "engagement", "retention", "custom"] = "conversion"
    eventName: Optional[str] = None
    segmentId: Optional[str] = None
    eventFilters: List[Dict[str, Any]] = Field(default_factory=list)
    attributionWindow: Duration = Field(default_factory=lambda: Duration(value=7, unit="days"))
    attributionModel: Literal["first_touch", "last_touch", "linear"] = "last_touch"
    countMultipleConversions: bool = False
    exitAfterGoal: bool = True
    markAsCompleted: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class ConditionConfiguration(BaseModel):
    """If/else branching rules and the labels of both outgoing paths."""
    conditionType: str = "custom_condition"
    join: Literal["all", "any"] = "all"
    conditions: List[Dict[str, Any]] = Field(default_factory=list)
    trueLabel: str = DEFAULT_TRUE_LABEL
    falseLabel: str = DEFAULT_FALSE_LABEL

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")
