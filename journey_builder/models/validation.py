"""
Validation result models returned by the journey validation service.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

Severity = Literal["error", "warning"]


class ValidationIssue(BaseModel):
    """One business-rule finding, optionally tied to a node."""
    nodeId: Optional[str] = None
    severity: Severity = "error"
    message: str
    suggestion: Optional[str] = None
    code: Optional[str] = None


class ValidationResponse(BaseModel):
    """Externally computed validation result."""
    errors: List[ValidationIssue] = Field(default_factory=list)
    warnings: List[ValidationIssue] = Field(default_factory=list)
    evaluatedAt: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")
