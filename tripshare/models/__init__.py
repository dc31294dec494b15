"""
Data Models Package

This package contains all Pydantic models used in TripShare.
All data flowing through the system must conform to these schemas.
"""

from tripshare.models.expense import (
    Currency,
    Expense,
    ExpenseDraft,
    coerce_amount,
    coerce_split,
)
from tripshare.models.ledger import (
    BalanceDirection,
    BalanceLine,
    ExpenseSummary,
    Ledger,
    Participant,
    ParticipantSummary,
    participant_key,
)
from tripshare.models.memory import MemoryCreate, MemoryUpdate, TripMemory
from tripshare.models.trip import DateRange, ItineraryItem, Trip, TripStatus
from tripshare.models.validation import ValidationIssue, ValidationResult
from tripshare.models.weather import (
    Coordinates,
    DailyWeather,
    GeoLocation,
    TaggedRange,
    WeatherReport,
    WeatherSegment,
    WeatherSource,
)
from tripshare.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Expense models
    "Currency",
    "Expense",
    "ExpenseDraft",
    "coerce_amount",
    "coerce_split",
    # Ledger models
    "BalanceDirection",
    "BalanceLine",
    "ExpenseSummary",
    "Ledger",
    "Participant",
    "ParticipantSummary",
    "participant_key",
    # Trip models
    "DateRange",
    "ItineraryItem",
    "Trip",
    "TripStatus",
    # Memory models
    "MemoryCreate",
    "MemoryUpdate",
    "TripMemory",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
    # Weather models
    "Coordinates",
    "DailyWeather",
    "GeoLocation",
    "TaggedRange",
    "WeatherReport",
    "WeatherSegment",
    "WeatherSource",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
