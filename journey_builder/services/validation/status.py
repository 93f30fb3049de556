"""
Consumption of externally computed validation results.

Validation itself runs in the storage service; this module turns its
response into an overall status, decides whether activation may proceed and
groups issues by node for "go to node" navigation.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from journey_builder.models.validation import ValidationIssue, ValidationResponse
from journey_builder.utils.coercion import as_dict, as_list, as_str
from journey_builder.utils.constants import (
    DEFAULT_ISSUE_MESSAGES,
    VALIDATION_FAIL,
    VALIDATION_NEEDS_ATTENTION,
    VALIDATION_PASS,
)


def derive_status(response: Optional[ValidationResponse]) -> str:
    """``fail`` if any error, ``needs_attention`` if any warning, else ``pass``."""
    if response is None:
        return VALIDATION_PASS
    if response.errors:
        return VALIDATION_FAIL
    if response.warnings:
        return VALIDATION_NEEDS_ATTENTION
    return VALIDATION_PASS


def can_activate(response: Optional[ValidationResponse], override: bool = False) -> bool:
    """Activation is blocked by a failing validation unless explicitly overridden."""
    return override or derive_status(response) != VALIDATION_FAIL


def issues_by_node(response: Optional[ValidationResponse]) -> Dict[Optional[str], List[ValidationIssue]]:
    """Errors then warnings grouped by node id, in first-seen order. Journey-level issues use None."""
    grouped: Dict[Optional[str], List[ValidationIssue]] = OrderedDict()
    if response is None:
        return grouped
    for issue in [*response.errors, *response.warnings]:
        grouped.setdefault(issue.nodeId, []).append(issue)
    return grouped


def _issue(raw: Any, severity: str) -> ValidationIssue:
    if isinstance(raw, str) and raw.strip():
        return ValidationIssue(severity=severity, message=raw.strip())
    data = as_dict(raw)
    code = as_str(data.get("code"))
    message = as_str(data.get("message")) or code or DEFAULT_ISSUE_MESSAGES[severity]
    return ValidationIssue(
        nodeId=as_str(data.get("nodeId")),
        severity=severity,
        message=message,
        suggestion=as_str(data.get("suggestion")),
        code=code,
    )


def parse_validation(raw: Any) -> ValidationResponse:
    """
    Read a validation response leniently.

    Every reported entry is kept so that it counts towards the status. An
    entry without a message falls back to its code, then to a generic text.
    The severity follows the list an issue was reported in.
    """
    data = as_dict(raw)
    errors = [_issue(item, "error") for item in as_list(data.get("errors"))]
    warnings = [_issue(item, "warning") for item in as_list(data.get("warnings"))]
    return ValidationResponse(errors=errors, warnings=warnings, evaluatedAt=as_str(data.get("evaluatedAt")))


@dataclass
class ValidationSummary:
    """Validation response with its derived status."""
    response: Optional[ValidationResponse] = None
    status: str = VALIDATION_PASS
    by_node: Dict[Optional[str], List[ValidationIssue]] = field(default_factory=dict)

    @classmethod
    def from_response(cls, response: Optional[ValidationResponse]) -> "ValidationSummary":
        return cls(response=response, status=derive_status(response), by_node=issues_by_node(response))

    @property
    def error_count(self) -> int:
        return len(self.response.errors) if self.response else 0

    @property
    def warning_count(self) -> int:
        return len(self.response.warnings) if self.response else 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "errorCount": self.error_count,
            "warningCount": self.warning_count,
            "evaluatedAt": self.response.evaluatedAt if self.response else None,
            "issuesByNode": [
                {"nodeId": node_id, "issues": [issue.model_dump(mode="json") for issue in issues]}
                for node_id, issues in self.by_node.items()
            ],
        }
