"""
Experiment (A/B test) configuration models.
"""

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator

from journey_builder.models.delay_config import Duration

Number = Union[int, float]


class Variant(BaseModel):
    """One arm of an experiment; its id doubles as the outgoing edge handle."""
    id: str
    name: str
    trafficAllocation: Number = 0
    isControl: bool = False
    color: Optional[str] = None
    description: Optional[str] = None


class ExperimentGoal(BaseModel):
    id: str
    name: str
    type: str = "conversion"
    attributionWindow: Duration = Field(default_factory=lambda: Duration(value=7, unit="days"))
    isPrimary: bool = False


class SampleSizeParams(BaseModel):
    baselineConversionRate: float = 0.05
    minimumDetectableEffect: float = 0.2
    confidenceLevel: float = 0.95
    statisticalPower: float = 0.8
    numberOfVariants: int = 2


class SampleSize(BaseModel):
    params: SampleSizeParams = Field(default_factory=SampleSizeParams)
    result: Optional[Dict[str, Any]] = None


class ExperimentDuration(BaseModel):
    minimumDays: int = 7
    maximumDays: Optional[int] = None


class WinningCriteria(BaseModel):
    strategy: Literal["automatic", "manual"] = "automatic"
    statisticalSignificance: float = 0.95
    minimumLift: float = 0.05
    minimumRuntime: Duration = Field(default_factory=lambda: Duration(value=7, unit="days"))
    postTestAction: Literal[
        "send_all_to_winner", "send_all_to_specific", "keep_split", "end_journey"
    ] = "send_all_to_winner"
    specificVariantId: Optional[str] = None
    removeLosingPaths: bool = True


class ExperimentStatus(BaseModel):
    state: Literal["draft", "running", "completed"] = "draft"
    winnerVariantId: Optional[str] = None


def default_variants() -> List[Variant]:
    return [
        Variant(id="control", name="Control", trafficAllocation=50, isControl=True, color="#6366F1"),
        Variant(id="variant_1", name="Variant B", trafficAllocation=50, isControl=False, color="#F59E0B"),
    ]


class ExperimentConfiguration(BaseModel):
    """Canonical experiment configuration.

    Allocations are stored as entered; they need not sum to 100.
    ``primaryGoalId`` is empty or references one of ``goals`` and exactly that
    goal carries ``isPrimary``.
    """

    experimentName: str = ""
    description: str = ""
    hypothesis: str = ""
    experimentType: Literal["ab_test", "multivariate"] = "ab_test"
    variants: List[Variant] = Field(default_factory=default_variants)
    goals: List[ExperimentGoal] = Field(default_factory=list)
    primaryGoalId: str = ""
    sampleSize: SampleSize = Field(default_factory=SampleSize)
    duration: ExperimentDuration = Field(default_factory=ExperimentDuration)
    winningCriteria: WinningCriteria = Field(default_factory=WinningCriteria)
    status: ExperimentStatus = Field(default_factory=ExperimentStatus)

    @model_validator(mode="after")
    def reconcile_primary_goal(self):
        """Drop a dangling primary goal id and keep the isPrimary flags in agreement."""
        goal_ids = {goal.id for goal in self.goals}
        if self.primaryGoalId and self.primaryGoalId not in goal_ids:
            self.primaryGoalId = ""
        if not self.primaryGoalId:
            flagged = [goal.id for goal in self.goals if goal.isPrimary]
            if flagged:
                self.primaryGoalId = flagged[0]
        for goal in self.goals:
            goal.isPrimary = goal.id == self.primaryGoalId
        return self

    @property
    def primary_goal(self) -> Optional[ExperimentGoal]:
        for goal in self.goals:
            if goal.id == self.primaryGoalId:
                return goal
        return None

    def variant_by_id(self, variant_id: Optional[str]) -> Optional[Variant]:
        for variant in self.variants:
            if variant.id == variant_id:
                return variant
        return None

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)
