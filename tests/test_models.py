"""
Tests for TripShare

Test strategy:
1. Unit tests for individual components (models, ledger, validators)
2. Integration tests for flows (with in-memory storage and fake weather)
3. No real API calls in tests (httpx is faked)
"""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

from tripshare.models.expense import (
    Currency,
    Expense,
    ExpenseDraft,
    coerce_amount,
    coerce_split,
)
from tripshare.models.ledger import Participant, participant_key
from tripshare.models.memory import MemoryCreate, MemoryUpdate, TripMemory
from tripshare.models.trip import DateRange, Trip, TripStatus
from tripshare.models.validation import ValidationIssue, ValidationResult
from tripshare.models.weather import GeoLocation, TaggedRange, WeatherSource
from tripshare.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestCoercion:
    """Tests for the lenient money readers used at ingestion."""

    def test_coerce_amount_reads_numbers_and_text(self):
        assert coerce_amount(300) == Decimal("300")
        assert coerce_amount("1,250.5") == Decimal("1250.5")
        assert coerce_amount(Decimal("7.25")) == Decimal("7.25")

    def test_coerce_amount_garbage_is_zero(self):
        """Non-numeric values never raise."""
        for value in (None, "abc", "", True, [], {}, float("nan"), float("inf"), Decimal("NaN")):
            assert coerce_amount(value) == Decimal("0")

    def test_coerce_split_accepts_json_text(self):
        split = coerce_split('{"A": 100, "B": "50.5"}')
        assert split == {"A": Decimal("100"), "B": Decimal("50.5")}

    def test_coerce_split_non_mapping_is_empty(self):
        assert coerce_split(None) == {}
        assert coerce_split([1, 2, 3]) == {}
        assert coerce_split("not json") == {}
        assert coerce_split("") == {}

    def test_coerce_split_trims_and_merges_names(self):
        """Blank names are dropped; names equal after trimming are summed."""
        split = coerce_split({" A": 10, "A ": 5, "  ": 99, "B": "x"})
        assert split == {"A": Decimal("15"), "B": Decimal("0")}


class TestExpenseModels:
    """Tests for expense-related Pydantic models."""

    def test_expense_creation(self):
        """Test Expense model creation."""
        trip_id = uuid4()
        expense = Expense(
            trip_id=trip_id,
            item_name="Ramen",
            amount="3000",
            currency="jpy",
            payer="Alice",
            split_details={"Alice": 1500, "Bob": 1500},
        )
        assert expense.amount == Decimal("3000")
        assert expense.currency == "JPY"
        assert expense.split_total == Decimal("3000")
        assert expense.trip_id == trip_id

    def test_expense_tolerates_malformed_row(self):
        """Legacy rows with garbage still produce a model."""
        expense = Expense(
            trip_id=uuid4(),
            amount="n/a",
            currency=None,
            payer=None,
            split_details="{broken",
        )
        assert expense.amount == Decimal("0")
        assert expense.currency == "TWD"
        assert expense.payer == ""
        assert expense.split_details == {}

    def test_expense_spent_on(self):
        expense = Expense(
            trip_id=uuid4(),
            created_at=datetime(2024, 5, 3, 12, 0, tzinfo=timezone.utc),
        )
        assert expense.spent_on == date(2024, 5, 3)

    def test_draft_normalizes_involved(self):
        """Test that involved names are trimmed and deduplicated."""
        draft = ExpenseDraft(
            item_name="Taxi",
            amount=Decimal("600"),
            currency=Currency.TWD,
            payer="Alice",
            involved=[" Alice ", "Bob", "Alice", ""],
        )
        assert draft.involved == ["Alice", "Bob"]
        assert draft.currency == "TWD"

    def test_currency_values(self):
        """Test the supported currency set."""
        assert [c.value for c in Currency] == ["TWD", "JPY", "KRW", "USD", "CNY", "THB", "VND"]


class TestParticipant:
    """Tests for participant identity."""

    def test_participant_key_is_case_and_space_insensitive(self):
        assert participant_key("  Alice   Chen ") == participant_key("alice chen")

    def test_participant_from_name(self):
        p = Participant.from_name("  Bob  Lee ")
        assert p.display_name == "Bob Lee"
        assert p.key == "bob lee"


class TestTripModels:
    """Tests for trip-related models."""

    def test_trip_defaults(self):
        trip = Trip(name="Kyoto 2025", owner_id="alice")
        assert trip.status == TripStatus.ACTIVE
        assert trip.companions == []
        assert trip.date_range is None
        assert trip.is_configured is False

    def test_trip_blank_destination_is_none(self):
        """Test that a whitespace-only destination counts as unset."""
        trip = Trip(name="T", owner_id="a", destination="   ")
        assert trip.destination is None

    def test_trip_date_validation(self):
        """Test that end date must not be before start date."""
        with pytest.raises(ValueError):
            Trip(
                name="T",
                owner_id="a",
                start_date=date(2025, 3, 10),
                end_date=date(2025, 3, 9),
            )

    def test_trip_is_configured(self):
        trip = Trip(
            name="T",
            owner_id="a",
            destination="京都",
            start_date=date(2025, 3, 1),
            end_date=date(2025, 3, 3),
        )
        assert trip.is_configured is True
        assert trip.date_range.days == 3

    def test_date_range(self):
        """Test DateRange helpers."""
        rng = DateRange(start=date(2024, 2, 28), end=date(2024, 3, 1))
        assert rng.days == 3
        assert rng.dates() == [date(2024, 2, 28), date(2024, 2, 29), date(2024, 3, 1)]
        assert date(2024, 2, 29) in rng
        assert date(2024, 3, 2) not in rng

    def test_date_range_rejects_reversed(self):
        with pytest.raises(ValueError):
            DateRange(start=date(2024, 3, 2), end=date(2024, 3, 1))


class TestMemoryModels:
    """Tests for memory models."""

    def test_memory_is_private_by_default(self):
        memory = TripMemory(trip_item_id=uuid4(), user_id="alice", content="Great view")
        assert memory.is_private is True

    def test_memory_link_must_be_http(self):
        """Test that external links need an http(s) scheme."""
        with pytest.raises(ValueError):
            MemoryCreate(trip_item_id=uuid4(), external_link="ftp://example.com")

    def test_memory_blank_link_is_none(self):
        update = MemoryUpdate(external_link="  ")
        assert update.external_link is None

    def test_memory_update_tracks_set_fields(self):
        update = MemoryUpdate(content="New")
        assert update.model_dump(exclude_unset=True) == {"content": "New"}


class TestWeatherModels:
    """Tests for weather models."""

    def test_geo_location_label(self):
        loc = GeoLocation(name="Kyoto", latitude=35.02, longitude=135.75, admin1="Kyoto", country="Japan")
        assert loc.label == "Kyoto, Japan"
        assert loc.coordinates.latitude == 35.02

    def test_tagged_range_days(self):
        tagged = TaggedRange(start=date(2025, 1, 1), end=date(2025, 1, 5), source=WeatherSource.FORECAST)
        assert tagged.days == 5

    def test_tagged_range_rejects_reversed(self):
        with pytest.raises(ValueError):
            TaggedRange(start=date(2025, 1, 5), end=date(2025, 1, 1), source=WeatherSource.HISTORICAL)


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.TRIP_CREATED,
            description="Trip created",
        )
        assert event.event_type == AuditEventType.TRIP_CREATED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.EXPENSE_ADDED,
            description="Expense added",
            details={"payer": "Alice", "amount": "300"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "expense_added"
        assert log_dict["details"]["payer"] == "Alice"

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEvent(
            event_type=AuditEventType.COMPANION_ADDED,
            description="Companion added: 小明",
            details={"name": "小明"},
            is_user_action=True,
        )
        row = event.to_sheets_row()
        assert len(row) == 11  # Expected number of columns
        assert row[2] == "companion_added"
        assert "小明" in row[8]  # details stay readable
        assert row[10] == "True"

    def test_audit_event_builder_expense_added(self):
        """Test AuditEventBuilder.expense_added."""
        correlation_id = uuid4()
        expense_id = uuid4()

        event = AuditEventBuilder.expense_added(
            expense_id=expense_id,
            trip_id=uuid4(),
            item_name="Sushi",
            amount="4500",
            currency="JPY",
            payer="Alice",
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.EXPENSE_ADDED
        assert event.entity_id == expense_id
        assert event.correlation_id == correlation_id
        assert event.is_user_action is True

    def test_audit_event_builder_memory_keeps_content_out(self):
        """Memory events carry ids only."""
        event = AuditEventBuilder.memory_changed(
            memory_id=uuid4(),
            event_type=AuditEventType.MEMORY_UPDATED,
            user_id="alice",
        )
        assert event.description == "Memory updated"
        assert event.details == {"user_id": "alice"}

    def test_configuration_incomplete_is_warning(self):
        event = AuditEventBuilder.weather_configuration_incomplete(
            trip_id=uuid4(),
            missing="destination",
        )
        assert event.severity == AuditSeverity.WARNING


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            schema_valid=False,
            semantic_valid=False,
            is_valid=False,
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="missing",
                    message="Amount is required",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1
        assert result.first_message("amount") == "Amount is required"
        assert result.first_message("payer") is None

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            schema_valid=True,
            semantic_valid=True,
            is_valid=True,
            issues=[
                ValidationIssue(
                    field="payer",
                    issue_type="unknown_name",
                    message="Guest is not a companion on this trip",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.error_count == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
