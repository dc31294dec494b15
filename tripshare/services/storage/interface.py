"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep trips in Google Sheets today and move to a real database later
2. Use in-memory storage for tests and the offline demo
3. Keep the flows decoupled from the storage implementation

The interface is intentionally simple - we're not building a full ORM.
Just the operations the trip, expense, itinerary and memory flows need.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from tripshare.models.audit import AuditEvent
from tripshare.models.expense import Expense
from tripshare.models.memory import TripMemory
from tripshare.models.trip import ItineraryItem, Trip


class TripStorageInterface(ABC):
    """
    Abstract interface for trip storage operations.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def save_trip(self, trip: Trip) -> bool:
        """
        Save a new trip.

        Raises:
            DuplicateError: If a trip with the same id exists
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get_trip(self, trip_id: UUID) -> Optional[Trip]:
        """Retrieve a trip by id, None if missing."""
        pass

    @abstractmethod
    async def update_trip(self, trip: Trip) -> bool:
        """
        Replace a stored trip.

        Raises:
            NotFoundError: If the trip doesn't exist
        """
        pass

    @abstractmethod
    async def list_trips(self, limit: int = 100) -> list[Trip]:
        """List trips, newest first."""
        pass


class ExpenseStorageInterface(ABC):
    """Abstract interface for expense storage operations."""

    @abstractmethod
    async def save_expense(self, expense: Expense) -> bool:
        """
        Save an expense row.

        Raises:
            DuplicateError: If an expense with the same id exists
        """
        pass

    @abstractmethod
    async def get_expense(self, expense_id: UUID) -> Optional[Expense]:
        pass

    @abstractmethod
    async def delete_expense(self, expense_id: UUID) -> bool:
        """
        Delete an expense by id.

        Returns:
            True if a row was deleted, False if it did not exist
        """
        pass

    @abstractmethod
    async def list_expenses(self, trip_id: UUID) -> list[Expense]:
        """All expenses of a trip, newest first."""
        pass


class ItineraryStorageInterface(ABC):
    """Abstract interface for itinerary items."""

    @abstractmethod
    async def save_item(self, item: ItineraryItem) -> bool:
        pass

    @abstractmethod
    async def get_item(self, item_id: UUID) -> Optional[ItineraryItem]:
        pass

    @abstractmethod
    async def list_items(self, trip_id: UUID) -> list[ItineraryItem]:
        """Items of a trip ordered by day, then start time."""
        pass


class MemoryStorageInterface(ABC):
    """
    Abstract interface for memories.

    Storage does not enforce privacy; the memory flow filters by author.
    """

    @abstractmethod
    async def save_memory(self, memory: TripMemory) -> bool:
        pass

    @abstractmethod
    async def get_memory(self, memory_id: UUID) -> Optional[TripMemory]:
        pass

    @abstractmethod
    async def update_memory(self, memory: TripMemory) -> bool:
        """
        Replace a stored memory.

        Raises:
            NotFoundError: If the memory doesn't exist
        """
        pass

    @abstractmethod
    async def delete_memory(self, memory_id: UUID) -> bool:
        pass

    @abstractmethod
    async def list_memories(
        self,
        trip_item_ids: list[UUID],
        user_id: Optional[str] = None,
    ) -> list[TripMemory]:
        """
        Memories attached to any of the given items, newest first.

        Args:
            trip_item_ids: Itinerary items to look at
            user_id: If given, only memories written by this user
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one add-expense action).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Args:
            entity_type: Type of entity (e.g., 'trip', 'expense')
            entity_id: The entity's ID

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
