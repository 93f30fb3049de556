"""
Validation result consumption.
"""
from .status import ValidationSummary, can_activate, derive_status, issues_by_node, parse_validation

__all__ = [
    "ValidationSummary",
    "can_activate",
    "derive_status",
    "issues_by_node",
    "parse_validation",
]
