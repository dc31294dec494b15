"""
Audit Logger

DESIGN DECISION: Every change to a shared trip is logged.
Companions edit the same trip from different phones; when a balance looks
wrong, the audit trail is how we find out who added what.

The audit logger:
- Is async so flows can await it next to storage calls
- Gracefully handles failures (a broken audit sheet never blocks an expense)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from tripshare.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from tripshare.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(ensure_ascii=False)
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit store (Google Sheets in production)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def recent_events(self, limit: int = 50) -> list[AuditEvent]:
        """Newest persisted events; empty when only logging locally."""
        if self._storage is None:
            return []
        return await self._storage.get_recent_events(limit=limit)

    async def log_trip_created(
        self,
        trip_id: UUID,
        name: str,
        owner_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.trip_created(
            trip_id=trip_id,
            name=name,
            owner_id=owner_id,
            correlation_id=correlation_id,
        ))

    async def log_trip_updated(
        self,
        trip_id: UUID,
        changes: dict,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.trip_updated(
            trip_id=trip_id,
            changes=changes,
            correlation_id=correlation_id,
        ))

    async def log_companion_changed(
        self,
        trip_id: UUID,
        name: str,
        added: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.companion_changed(
            trip_id=trip_id,
            name=name,
            added=added,
            correlation_id=correlation_id,
        ))

    async def log_companion_rejected(
        self,
        trip_id: UUID,
        name: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.companion_rejected(
            trip_id=trip_id,
            name=name,
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_expense_added(
        self,
        expense_id: UUID,
        trip_id: UUID,
        item_name: str,
        amount: str,
        currency: str,
        payer: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a saved expense."""
        await self.log(AuditEventBuilder.expense_added(
            expense_id=expense_id,
            trip_id=trip_id,
            item_name=item_name,
            amount=amount,
            currency=currency,
            payer=payer,
            correlation_id=correlation_id,
        ))

    async def log_expense_deleted(
        self,
        expense_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.expense_deleted(
            expense_id=expense_id,
            correlation_id=correlation_id,
        ))

    async def log_validation_failed(
        self,
        trip_id: UUID,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an expense draft that did not pass validation."""
        await self.log(AuditEventBuilder.expense_validation_failed(
            trip_id=trip_id,
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_itinerary_item_added(
        self,
        item_id: UUID,
        trip_id: UUID,
        title: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.itinerary_item_added(
            item_id=item_id,
            trip_id=trip_id,
            title=title,
            correlation_id=correlation_id,
        ))

    async def log_memory_changed(
        self,
        memory_id: UUID,
        event_type: AuditEventType,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.memory_changed(
            memory_id=memory_id,
            event_type=event_type,
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    async def log_weather_fetched(
        self,
        trip_id: UUID,
        location: str,
        segment_count: int,
        historical_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.weather_fetched(
            trip_id=trip_id,
            location=location,
            segment_count=segment_count,
            historical_count=historical_count,
            correlation_id=correlation_id,
        ))

    async def log_weather_configuration_incomplete(
        self,
        trip_id: UUID,
        missing: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.weather_configuration_incomplete(
            trip_id=trip_id,
            missing=missing,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., saving an expense).
    Pass it through all subsequent operations.
    """
    return uuid4()
