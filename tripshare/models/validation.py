"""
Validation Models

Shared by the expense validator and the companion checks.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from tripshare.models.expense import utcnow


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'unknown_name')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage validation.

    Stage 1: Schema validation (required fields, formats)
    Stage 2: Semantic validation (roster and sanity checks)
    """

    validated_at: datetime = Field(default_factory=utcnow)

    schema_valid: bool = Field(
        ...,
        description="Did schema validation pass?"
    )
    semantic_valid: bool = Field(
        ...,
        description="Did semantic validation pass?"
    )
    is_valid: bool = Field(
        ...,
        description="Overall validation result"
    )

    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    @property
    def errors(self) -> list[ValidationIssue]:
        """Blocking issues, in the order they were found."""
        return [issue for issue in self.issues if issue.severity == "error"]

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def first_message(self, field: Optional[str] = None) -> Optional[str]:
        """Message of the first issue, optionally for one form field."""
        for issue in self.issues:
            if field is None or issue.field == field:
                return issue.message
        return None
