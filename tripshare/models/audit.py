"""
Audit Models for TripShare

Every significant action in the system is logged for audit purposes.
This provides:
1. Traceability of who changed a shared trip and when
2. Debugging information when a weather source or the store misbehaves
3. A history companions can look at when balances look wrong

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from tripshare.models.expense import utcnow


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Trips
    TRIP_CREATED = "trip_created"
    TRIP_UPDATED = "trip_updated"
    COMPANION_ADDED = "companion_added"
    COMPANION_REMOVED = "companion_removed"
    COMPANION_REJECTED = "companion_rejected"

    # Expenses
    EXPENSE_ADDED = "expense_added"
    EXPENSE_DELETED = "expense_deleted"
    EXPENSE_VALIDATION_FAILED = "expense_validation_failed"

    # Itinerary & memories
    ITINERARY_ITEM_ADDED = "itinerary_item_added"
    MEMORY_SAVED = "memory_saved"
    MEMORY_UPDATED = "memory_updated"
    MEMORY_DELETED = "memory_deleted"

    # Weather
    WEATHER_FETCHED = "weather_fetched"
    WEATHER_CONFIGURATION_INCOMPLETE = "weather_configuration_incomplete"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'trip', 'expense', 'memory')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one page action)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, ensure_ascii=False, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.expense_added(expense_id, trip_id, ...)
        event = AuditEventBuilder.external_service_error("open-meteo", str(e))
    """

    @staticmethod
    def trip_created(
        trip_id: UUID,
        name: str,
        owner_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRIP_CREATED,
            entity_type="trip",
            entity_id=trip_id,
            correlation_id=correlation_id,
            description=f"Trip created: {name}",
            details={"name": name, "owner_id": owner_id},
            is_user_action=True,
        )

    @staticmethod
    def trip_updated(
        trip_id: UUID,
        changes: dict[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRIP_UPDATED,
            entity_type="trip",
            entity_id=trip_id,
            correlation_id=correlation_id,
            description=f"Trip setup updated ({', '.join(sorted(changes)) or 'no changes'})",
            details={k: str(v) for k, v in changes.items()},
            is_user_action=True,
        )

    @staticmethod
    def companion_changed(
        trip_id: UUID,
        name: str,
        added: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.COMPANION_ADDED if added
                else AuditEventType.COMPANION_REMOVED
            ),
            entity_type="trip",
            entity_id=trip_id,
            correlation_id=correlation_id,
            description=f"Companion {'added' if added else 'removed'}: {name}",
            details={"name": name},
            is_user_action=True,
        )

    @staticmethod
    def companion_rejected(
        trip_id: UUID,
        name: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COMPANION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="trip",
            entity_id=trip_id,
            correlation_id=correlation_id,
            description=f"Companion name rejected: {name}",
            details={"name": name, "reason": reason},
            is_user_action=True,
        )

    @staticmethod
    def expense_added(
        expense_id: UUID,
        trip_id: UUID,
        item_name: str,
        amount: str,
        currency: str,
        payer: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_ADDED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense added: {item_name} - {currency} {amount} paid by {payer}",
            details={
                "trip_id": str(trip_id),
                "item_name": item_name,
                "amount": amount,
                "currency": currency,
                "payer": payer,
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_deleted(
        expense_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description="Expense deleted",
            is_user_action=True,
        )

    @staticmethod
    def expense_validation_failed(
        trip_id: UUID,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="trip",
            entity_id=trip_id,
            correlation_id=correlation_id,
            description=f"Expense rejected with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def itinerary_item_added(
        item_id: UUID,
        trip_id: UUID,
        title: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ITINERARY_ITEM_ADDED,
            entity_type="itinerary_item",
            entity_id=item_id,
            correlation_id=correlation_id,
            description=f"Itinerary item added: {title}",
            details={"trip_id": str(trip_id)},
            is_user_action=True,
        )

    @staticmethod
    def memory_changed(
        memory_id: UUID,
        event_type: AuditEventType,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        # Memory content is private; only ids go into the audit trail
        return AuditEvent(
            event_type=event_type,
            entity_type="memory",
            entity_id=memory_id,
            correlation_id=correlation_id,
            description=f"Memory {event_type.value.removeprefix('memory_')}",
            details={"user_id": user_id},
            is_user_action=True,
        )

    @staticmethod
    def weather_fetched(
        trip_id: UUID,
        location: str,
        segment_count: int,
        historical_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.WEATHER_FETCHED,
            entity_type="trip",
            entity_id=trip_id,
            correlation_id=correlation_id,
            description=f"Weather loaded for {location}: {segment_count} days",
            details={
                "location": location,
                "segment_count": segment_count,
                "historical_count": historical_count,
            },
        )

    @staticmethod
    def weather_configuration_incomplete(
        trip_id: UUID,
        missing: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.WEATHER_CONFIGURATION_INCOMPLETE,
            severity=AuditSeverity.WARNING,
            entity_type="trip",
            entity_id=trip_id,
            correlation_id=correlation_id,
            description=f"Weather unavailable: trip {missing} not set",
            details={"missing": missing},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={"service": service},
            correlation_id=correlation_id,
        )
