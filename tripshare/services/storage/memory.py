"""
In-Memory Storage Implementation

Dict-backed implementations of every storage interface. Used by the test
suite and by the app when Google Sheets is not configured (offline demo).
Nothing survives a process restart.

Models are copied on the way in and on the way out so callers can never
mutate stored state by accident.
"""

from datetime import time
from typing import Optional
from uuid import UUID

from tripshare.models.audit import AuditEvent
from tripshare.models.expense import Expense
from tripshare.models.memory import TripMemory
from tripshare.models.trip import ItineraryItem, Trip
from tripshare.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    ItineraryStorageInterface,
    MemoryStorageInterface,
    NotFoundError,
    TripStorageInterface,
)


class InMemoryTripStorage(TripStorageInterface):

    def __init__(self):
        self._trips: dict[UUID, Trip] = {}

    async def save_trip(self, trip: Trip) -> bool:
        if trip.id in self._trips:
            raise DuplicateError(f"Trip already exists: {trip.id}")
        self._trips[trip.id] = trip.model_copy(deep=True)
        return True

    async def get_trip(self, trip_id: UUID) -> Optional[Trip]:
        trip = self._trips.get(trip_id)
        return trip.model_copy(deep=True) if trip else None

    async def update_trip(self, trip: Trip) -> bool:
        if trip.id not in self._trips:
            raise NotFoundError(f"Trip not found: {trip.id}")
        self._trips[trip.id] = trip.model_copy(deep=True)
        return True

    async def list_trips(self, limit: int = 100) -> list[Trip]:
        trips = sorted(
            self._trips.values(), key=lambda t: t.created_at, reverse=True
        )
        return [t.model_copy(deep=True) for t in trips[:limit]]


class InMemoryExpenseStorage(ExpenseStorageInterface):

    def __init__(self):
        self._expenses: dict[UUID, Expense] = {}

    async def save_expense(self, expense: Expense) -> bool:
        if expense.id in self._expenses:
            raise DuplicateError(f"Expense already exists: {expense.id}")
        self._expenses[expense.id] = expense.model_copy(deep=True)
        return True

    async def get_expense(self, expense_id: UUID) -> Optional[Expense]:
        expense = self._expenses.get(expense_id)
        return expense.model_copy(deep=True) if expense else None

    async def delete_expense(self, expense_id: UUID) -> bool:
        return self._expenses.pop(expense_id, None) is not None

    async def list_expenses(self, trip_id: UUID) -> list[Expense]:
        expenses = [e for e in self._expenses.values() if e.trip_id == trip_id]
        expenses.sort(key=lambda e: e.created_at, reverse=True)
        return [e.model_copy(deep=True) for e in expenses]


class InMemoryItineraryStorage(ItineraryStorageInterface):

    def __init__(self):
        self._items: dict[UUID, ItineraryItem] = {}

    async def save_item(self, item: ItineraryItem) -> bool:
        if item.id in self._items:
            raise DuplicateError(f"Itinerary item already exists: {item.id}")
        self._items[item.id] = item.model_copy(deep=True)
        return True

    async def get_item(self, item_id: UUID) -> Optional[ItineraryItem]:
        item = self._items.get(item_id)
        return item.model_copy(deep=True) if item else None

    async def list_items(self, trip_id: UUID) -> list[ItineraryItem]:
        items = [i for i in self._items.values() if i.trip_id == trip_id]
        items.sort(key=lambda i: (i.day, i.start_time or time.min))
        return [i.model_copy(deep=True) for i in items]


class InMemoryMemoryStorage(MemoryStorageInterface):

    def __init__(self):
        self._memories: dict[UUID, TripMemory] = {}

    async def save_memory(self, memory: TripMemory) -> bool:
        if memory.id in self._memories:
            raise DuplicateError(f"Memory already exists: {memory.id}")
        self._memories[memory.id] = memory.model_copy(deep=True)
        return True

    async def get_memory(self, memory_id: UUID) -> Optional[TripMemory]:
        memory = self._memories.get(memory_id)
        return memory.model_copy(deep=True) if memory else None

    async def update_memory(self, memory: TripMemory) -> bool:
        if memory.id not in self._memories:
            raise NotFoundError(f"Memory not found: {memory.id}")
        self._memories[memory.id] = memory.model_copy(deep=True)
        return True

    async def delete_memory(self, memory_id: UUID) -> bool:
        return self._memories.pop(memory_id, None) is not None

    async def list_memories(
        self,
        trip_item_ids: list[UUID],
        user_id: Optional[str] = None,
    ) -> list[TripMemory]:
        wanted = set(trip_item_ids)
        memories = [
            m for m in self._memories.values()
            if m.trip_item_id in wanted
            and (user_id is None or m.user_id == user_id)
        ]
        memories.sort(key=lambda m: m.created_at, reverse=True)
        return [m.model_copy(deep=True) for m in memories]


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of events."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self.events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        events = [
            e for e in self.events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]
