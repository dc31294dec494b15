"""Tests for the expense and companion validators."""

import pytest
from decimal import Decimal

from tripshare.models.expense import ExpenseDraft
from tripshare.validation import (
    CompanionValidator,
    ExpenseValidationError,
    ExpenseValidator,
)


ROSTER = ["Alice", "Bob", "Carol"]


def make_draft(**overrides):
    data = {
        "item_name": "Dinner",
        "amount": Decimal("900"),
        "currency": "TWD",
        "payer": "Alice",
        "involved": ["Alice", "Bob", "Carol"],
    }
    data.update(overrides)
    return ExpenseDraft(**data)


@pytest.fixture
def validator():
    return ExpenseValidator(large_expense_threshold=100000)


class TestExpenseValidator:
    """Tests for the two-stage expense validator."""

    def test_valid_draft_passes(self, validator):
        result = validator.validate(make_draft(), ROSTER)
        assert result.is_valid
        assert result.issues == []
        assert validator.get_user_friendly_summary(result) == "✅ All checks passed!"

    def test_missing_fields_are_all_reported(self, validator):
        """Every schema problem is reported at once."""
        draft = ExpenseDraft(currency="TWD")

        result = validator.validate(draft, ROSTER)

        assert not result.schema_valid
        assert not result.is_valid
        fields = {issue.field for issue in result.issues}
        assert fields == {"item_name", "amount", "payer", "involved"}

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5")])
    def test_non_positive_amount_is_error(self, validator, amount):
        result = validator.validate(make_draft(amount=amount), ROSTER)
        assert result.has_errors
        assert result.issues[0].issue_type == "invalid_value"

    def test_unsupported_currency(self, validator):
        result = validator.validate(make_draft(currency="eur"), ROSTER)
        assert not result.schema_valid
        assert result.issues[0].field == "currency"

    def test_semantic_stage_skipped_after_schema_failure(self, validator):
        result = validator.validate(make_draft(amount=None, payer="Stranger"), ROSTER)
        assert all(issue.severity == "error" for issue in result.issues)
        assert not result.semantic_valid

    def test_unknown_names_are_warnings(self, validator):
        """Names outside the roster are allowed but flagged."""
        draft = make_draft(payer="Guest", involved=["Alice", "Dave"])

        result = validator.validate(draft, ROSTER)

        assert result.is_valid
        assert len(result.warnings) == 2
        assert all(issue.issue_type == "unknown_name" for issue in result.issues)

    def test_roster_match_is_case_insensitive(self, validator):
        result = validator.validate(make_draft(payer="alice", involved=["BOB"]), ROSTER)
        assert result.warnings == []

    def test_no_roster_skips_name_checks(self, validator):
        result = validator.validate(make_draft(payer="Anyone"), [])
        assert result.warnings == []

    def test_large_amount_warning(self, validator):
        result = validator.validate(make_draft(amount=Decimal("250000")), ROSTER)
        assert result.is_valid
        assert result.issues[0].issue_type == "suspicious_value"

    def test_summary_lists_errors_and_fixes(self, validator):
        result = validator.validate(make_draft(amount=Decimal("0")), ROSTER)
        summary = validator.get_user_friendly_summary(result)
        assert "can't be saved yet" in summary
        assert "Amount must be greater than zero" in summary

    def test_validation_error_carries_result(self, validator):
        result = validator.validate(make_draft(item_name=""), ROSTER)
        error = ExpenseValidationError(result)
        assert error.result is result
        assert "Item name is required" in str(error)


class TestCompanionValidator:
    """Tests for companion name checks."""

    @pytest.fixture
    def checker(self):
        return CompanionValidator(forbidden_names=["me", "我"])

    def test_new_name_ok(self, checker):
        assert checker.check("Dave", ROSTER).is_valid

    def test_empty_name(self, checker):
        result = checker.check("   ", ROSTER)
        assert result.issues[0].issue_type == "missing"

    @pytest.mark.parametrize("name", ["me", " ME ", "我"])
    def test_forbidden_placeholder_names(self, checker, name):
        result = checker.check(name, ROSTER)
        assert not result.is_valid
        assert result.issues[0].issue_type == "forbidden_name"

    def test_duplicate_is_case_insensitive(self, checker):
        result = checker.check("  alice ", ROSTER)
        assert result.issues[0].issue_type == "duplicate"
