"""
Two-Stage Validation Pipeline

DESIGN DECISION: New expenses are validated in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Required field presence (item, amount, payer, at least one companion)
- Amount must be positive
- Currency must be one the form supports

STAGE 2 - SEMANTIC VALIDATION:
- Payer and involved companions should be on the trip roster
- Unusually large amounts are flagged

Stage 2 only produces warnings. Names outside the roster are allowed
(the ledger gives them their own bucket) but usually mean a typo.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for the user to review.
"""

from decimal import Decimal
from typing import Iterable, Optional

from tripshare.config import get_settings
from tripshare.models.expense import Currency, ExpenseDraft
from tripshare.models.ledger import participant_key
from tripshare.models.validation import ValidationIssue, ValidationResult


class ExpenseValidationError(Exception):
    """A draft expense failed validation."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = [i.message for i in result.errors]
        super().__init__("; ".join(messages) or "Expense is not valid")


class CompanionValidationError(Exception):
    """A companion name was rejected."""

    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(reason)


SUPPORTED_CURRENCIES = [c.value for c in Currency]


class ExpenseValidator:
    """
    Validates a draft expense before it is split and saved.

    Stage 1: Schema validation
    Stage 2: Semantic validation against the trip roster
    """

    def __init__(self, large_expense_threshold: Optional[float] = None):
        if large_expense_threshold is None:
            large_expense_threshold = get_settings().app.large_expense_threshold
        self._large_threshold = Decimal(str(large_expense_threshold))

    def _validate_schema(
        self,
        draft: ExpenseDraft,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        if not draft.item_name:
            issues.append(ValidationIssue(
                field="item_name",
                issue_type="missing",
                message="Item name is required",
                severity="error",
                suggested_fix="Describe what was bought",
            ))

        if draft.amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required",
                severity="error",
            ))
        elif not draft.amount.is_finite() or draft.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
                suggested_fix="Enter the total that was paid",
            ))

        if draft.currency not in SUPPORTED_CURRENCIES:
            issues.append(ValidationIssue(
                field="currency",
                issue_type="invalid_value",
                message=f"Currency '{draft.currency}' is not supported",
                severity="error",
                suggested_fix=f"Use one of {', '.join(SUPPORTED_CURRENCIES)}",
            ))

        if not draft.payer:
            issues.append(ValidationIssue(
                field="payer",
                issue_type="missing",
                message="Please select who paid",
                severity="error",
            ))

        if not draft.involved:
            issues.append(ValidationIssue(
                field="involved",
                issue_type="missing",
                message="Select at least one companion to split with",
                severity="error",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def _validate_semantic(
        self,
        draft: ExpenseDraft,
        companions: list[str],
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Semantic validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []
        roster_keys = {participant_key(name) for name in companions}

        if roster_keys:
            if participant_key(draft.payer) not in roster_keys:
                issues.append(ValidationIssue(
                    field="payer",
                    issue_type="unknown_name",
                    message=f"{draft.payer} is not a companion on this trip",
                    severity="warning",
                    suggested_fix="Add them as a companion or check the spelling",
                ))

            for name in draft.involved:
                if participant_key(name) not in roster_keys:
                    issues.append(ValidationIssue(
                        field="involved",
                        issue_type="unknown_name",
                        message=f"{name} is not a companion on this trip",
                        severity="warning",
                        suggested_fix="Add them as a companion or check the spelling",
                    ))

        if draft.amount is not None and draft.amount > self._large_threshold:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({draft.currency} {draft.amount:,}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def validate(
        self,
        draft: ExpenseDraft,
        companions: Optional[Iterable[str]] = None,
    ) -> ValidationResult:
        """
        Run full two-stage validation pipeline.

        Args:
            draft: The submitted expense form
            companions: Trip roster; roster checks are skipped when empty

        Returns:
            ValidationResult with all issues found
        """
        all_issues = []

        schema_valid, schema_issues = self._validate_schema(draft)
        all_issues.extend(schema_issues)

        # Only run stage 2 if stage 1 passes
        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_semantic(
                draft, list(companions or [])
            )
            all_issues.extend(semantic_issues)

        warnings = [i.message for i in all_issues if i.severity == "warning"]

        return ValidationResult(
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            issues=all_issues,
            warnings=warnings,
        )

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed!"

        lines = []

        if not result.schema_valid:
            lines.append("❌ This expense can't be saved yet:")
            for issue in result.errors:
                lines.append(f"   • {issue.message}")
                if issue.suggested_fix:
                    lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please double-check:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)


class CompanionValidator:
    """
    Checks a companion name before it joins a trip roster.

    Placeholder names like "me" would make balances ambiguous once a
    second person uses the trip, so they are refused.
    """

    def __init__(self, forbidden_names: Optional[Iterable[str]] = None):
        if forbidden_names is None:
            forbidden_names = get_settings().app.forbidden_companion_names_list
        self._forbidden = {participant_key(n) for n in forbidden_names}

    def check(self, name: str, existing: Iterable[str] = ()) -> ValidationResult:
        """
        Validate a new companion name against the current roster.

        Duplicate detection is case-insensitive.
        """
        issues = []
        display = " ".join((name or "").split())
        key = participant_key(display)

        if not display:
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Companion name cannot be empty",
                severity="error",
            ))
        elif key in self._forbidden:
            issues.append(ValidationIssue(
                field="name",
                issue_type="forbidden_name",
                message=f"'{display}' can't be used as a companion name",
                severity="error",
                suggested_fix="Use the person's actual name",
            ))
        elif key in {participant_key(n) for n in existing}:
            issues.append(ValidationIssue(
                field="name",
                issue_type="duplicate",
                message=f"{display} is already on this trip",
                severity="error",
            ))

        valid = not issues
        return ValidationResult(
            schema_valid=valid,
            semantic_valid=valid,
            is_valid=valid,
            issues=issues,
        )
