"""
Request and response models for the API.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class TriggerNormalizeRequest(BaseModel):
    """Request model for trigger normalization."""

    config: Any = Field(
        default=None,
        description="Trigger configuration in any supported shape: canonical, tagged-union or legacy flat"
    )

    fallbackSubtype: Optional[str] = Field(
        default=None,
        description="Catalog subtype used to infer the category when the input carries no hint"
    )


class TriggerNormalizeResponse(BaseModel):
    """Canonical trigger configuration with its derived views."""

    triggerConfiguration: Dict[str, Any]
    legacyMirror: Dict[str, Any]
    payload: Dict[str, Any]
    subtype: str
    summary: str


class LegacyMirrorRequest(BaseModel):
    """Request model for legacy mirror projection."""

    config: Any = Field(
        default=None,
        description="Trigger configuration to project onto the flat legacy shape"
    )


class JourneyGraphRequest(BaseModel):
    """A persisted journey to convert into the editable graph."""

    journey: Dict[str, Any] = Field(
        ...,
        description="Persisted journey JSON; malformed fields are defaulted"
    )


class GraphRequest(BaseModel):
    """An editable canvas graph."""

    nodes: List[Dict[str, Any]] = Field(default_factory=list)
    edges: List[Dict[str, Any]] = Field(default_factory=list)


class GraphResponse(BaseModel):
    nodes: List[Dict[str, Any]]
    edges: List[Dict[str, Any]]


class NodeSummary(BaseModel):
    nodeId: str
    variant: str
    summary: Optional[str] = None
    isConfigured: bool = False


class SummariesResponse(BaseModel):
    summaries: List[NodeSummary]


class ValidationStatusRequest(BaseModel):
    """Validation result as returned by the validation service."""

    validation: Any = Field(
        default=None,
        description="Raw ``{errors, warnings, evaluatedAt}`` payload"
    )

    override: bool = Field(
        default=False,
        description="Whether an explicit override of blocking errors was given"
    )


class ValidationStatusResponse(BaseModel):
    status: str
    errorCount: int
    warningCount: int
    evaluatedAt: Optional[str] = None
    issuesByNode: List[Dict[str, Any]]
    canActivate: bool


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    message: str
    status: str = "error"
    details: Optional[List[Dict[str, Any]]] = None
