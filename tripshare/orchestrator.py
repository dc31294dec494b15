"""
Main Orchestrator for TripShare

This module ties together all the components and defines the
end-to-end flows for:
1. Trips (setup, companions, itinerary)
2. Expenses (validate → split → save → ledger)
3. Weather (trip → geocode → forecast + archive)
4. Memories (private notes on itinerary items)

DESIGN DECISION: The orchestrator enforces the boundaries:
- No expense persists without passing validation
- Balances are always recomputed from stored rows, never stored
- Memories are only ever shown to, and changed by, their author
- Every change to shared data is audited

The UI talks only to these flows.
"""

from dataclasses import dataclass
from datetime import date, time
from typing import Any, Optional
from uuid import UUID

import structlog

from tripshare.audit import AuditLogger, create_correlation_id
from tripshare.cache import TTLCache
from tripshare.config import get_settings
from tripshare.ledger import (
    Roster,
    build_equal_split,
    compute_ledger,
    summarize_balances,
)
from tripshare.models.audit import AuditEventType
from tripshare.models.expense import Expense, ExpenseDraft, utcnow
from tripshare.models.ledger import ExpenseSummary, Ledger, participant_key
from tripshare.models.memory import MemoryCreate, MemoryUpdate, TripMemory
from tripshare.models.trip import DEFAULT_COVER_IMAGE, ItineraryItem, Trip
from tripshare.models.validation import ValidationResult
from tripshare.models.weather import GeoLocation, WeatherReport
from tripshare.services.storage import (
    ExpenseStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    GoogleSheetsItineraryStorage,
    GoogleSheetsMemoryStorage,
    GoogleSheetsTripStorage,
    InMemoryExpenseStorage,
    InMemoryItineraryStorage,
    InMemoryMemoryStorage,
    InMemoryTripStorage,
    ItineraryStorageInterface,
    MemoryStorageInterface,
    NotFoundError,
    TripStorageInterface,
)
from tripshare.validation import (
    CompanionValidationError,
    CompanionValidator,
    ExpenseValidationError,
    ExpenseValidator,
)
from tripshare.weather import (
    ConfigurationIncompleteError,
    DailyWeatherSource,
    GeocodingClient,
    OpenMeteoClient,
    WeatherSourceError,
    aggregate_weather,
    translate_place,
)


logger = structlog.get_logger(__name__)


class PermissionDeniedError(Exception):
    """The acting user may not touch this record."""
    pass


async def _load_trip(storage: TripStorageInterface, trip_id: UUID) -> Trip:
    trip = await storage.get_trip(trip_id)
    if trip is None:
        raise NotFoundError(f"Trip not found: {trip_id}")
    return trip


class TripFlow:
    """
    Orchestrates trip setup.

    The roster (`Trip.companions`) is what the ledger is keyed on, so
    every change to it goes through the companion validator.
    """

    def __init__(
        self,
        trip_storage: TripStorageInterface,
        itinerary_storage: Optional[ItineraryStorageInterface] = None,
        companion_validator: Optional[CompanionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._trips = trip_storage
        self._itinerary = itinerary_storage
        self._validator = companion_validator or CompanionValidator()
        self._audit_logger = audit_logger

    async def create_trip(
        self,
        name: str,
        owner_id: str,
        owner_name: Optional[str] = None,
        destination: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        cover_image: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Trip:
        """
        Create a trip. The owner is the first companion.

        Raises:
            ValidationError: Bad name or end date before start date
        """
        correlation_id = correlation_id or create_correlation_id()

        trip = Trip(
            name=name,
            owner_id=owner_id,
            destination=destination,
            start_date=start_date,
            end_date=end_date,
            companions=[" ".join((owner_name or owner_id).split())],
            cover_image=cover_image or DEFAULT_COVER_IMAGE,
        )
        await self._trips.save_trip(trip)

        if self._audit_logger:
            await self._audit_logger.log_trip_created(
                trip_id=trip.id,
                name=trip.name,
                owner_id=owner_id,
                correlation_id=correlation_id,
            )
        return trip

    async def get_trip(self, trip_id: UUID) -> Trip:
        return await _load_trip(self._trips, trip_id)

    async def list_trips(self, limit: int = 100) -> list[Trip]:
        return await self._trips.list_trips(limit=limit)

    async def update_setup(
        self,
        trip_id: UUID,
        correlation_id: Optional[UUID] = None,
        **changes: Any,
    ) -> Trip:
        """
        Change name, destination, dates or cover image.

        Only the keyword arguments given are applied; pass
        `destination=None` to clear a destination.

        Raises:
            ValueError: Unknown field
            ValidationError: Result would be invalid (e.g. end before start)
        """
        allowed = {"name", "destination", "start_date", "end_date", "cover_image"}
        unknown = set(changes) - allowed
        if unknown:
            raise ValueError(f"Cannot update trip fields: {', '.join(sorted(unknown))}")

        trip = await _load_trip(self._trips, trip_id)
        updated = Trip.model_validate({
            **trip.model_dump(),
            **changes,
            "updated_at": utcnow(),
        })
        await self._trips.update_trip(updated)

        if self._audit_logger:
            await self._audit_logger.log_trip_updated(
                trip_id=trip_id,
                changes=changes,
                correlation_id=correlation_id,
            )
        return updated

    async def add_companion(
        self,
        trip_id: UUID,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> Trip:
        """
        Add a companion to the roster.

        Raises:
            CompanionValidationError: Empty, placeholder or duplicate name
        """
        trip = await _load_trip(self._trips, trip_id)
        result = self._validator.check(name, trip.companions)
        if not result.is_valid:
            reason = result.first_message("name")
            if self._audit_logger:
                await self._audit_logger.log_companion_rejected(
                    trip_id=trip_id,
                    name=name,
                    reason=reason,
                    correlation_id=correlation_id,
                )
            raise CompanionValidationError(name, reason)

        return await self._save_roster(
            trip, trip.companions + [" ".join(name.split())], name, True, correlation_id
        )

    async def remove_companion(
        self,
        trip_id: UUID,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> Trip:
        """
        Remove a companion, matching case-insensitively.

        Their past expenses stay; the ledger keeps their balance in an
        off-roster bucket.
        """
        trip = await _load_trip(self._trips, trip_id)
        key = participant_key(name)
        remaining = [c for c in trip.companions if participant_key(c) != key]
        if len(remaining) == len(trip.companions):
            return trip
        return await self._save_roster(trip, remaining, name, False, correlation_id)

    async def ensure_companion(
        self,
        trip_id: UUID,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> Trip:
        """
        Make sure the current user is on the roster.

        Trips created before the owner was auto-added, or joined through a
        shared link, may be missing the viewer. Matching is case-insensitive,
        so "alice" viewing a trip that lists "Alice" changes nothing.
        """
        trip = await _load_trip(self._trips, trip_id)
        display = " ".join((name or "").split())
        if not display:
            return trip
        if participant_key(display) in {participant_key(c) for c in trip.companions}:
            return trip
        logger.info("companion_self_healed", trip_id=str(trip_id), name=display)
        return await self._save_roster(
            trip, trip.companions + [display], display, True, correlation_id
        )

    async def leave_trip(
        self,
        trip_id: UUID,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> Trip:
        """The current user takes themselves off the roster."""
        return await self.remove_companion(trip_id, name, correlation_id)

    async def _save_roster(
        self,
        trip: Trip,
        companions: list[str],
        name: str,
        added: bool,
        correlation_id: Optional[UUID],
    ) -> Trip:
        updated = trip.model_copy(update={
            "companions": companions,
            "updated_at": utcnow(),
        })
        await self._trips.update_trip(updated)
        if self._audit_logger:
            await self._audit_logger.log_companion_changed(
                trip_id=trip.id,
                name=name,
                added=added,
                correlation_id=correlation_id,
            )
        return updated

    async def add_itinerary_item(
        self,
        trip_id: UUID,
        day: date,
        title: str,
        start_time: Optional[time] = None,
        location: Optional[str] = None,
        notes: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ItineraryItem:
        """
        Add a stop to the itinerary.

        Raises:
            ValueError: Day outside the trip dates
        """
        if self._itinerary is None:
            raise RuntimeError("Itinerary storage is not configured")

        trip = await _load_trip(self._trips, trip_id)
        date_range = trip.date_range
        if date_range is not None and day not in date_range:
            raise ValueError(
                f"{day.isoformat()} is outside the trip "
                f"({date_range.start.isoformat()} to {date_range.end.isoformat()})"
            )

        item = ItineraryItem(
            trip_id=trip_id,
            day=day,
            title=title,
            start_time=start_time,
            location=location,
            notes=notes,
        )
        await self._itinerary.save_item(item)

        if self._audit_logger:
            await self._audit_logger.log_itinerary_item_added(
                item_id=item.id,
                trip_id=trip_id,
                title=item.title,
                correlation_id=correlation_id,
            )
        return item

    async def list_itinerary(self, trip_id: UUID) -> list[ItineraryItem]:
        if self._itinerary is None:
            return []
        return await self._itinerary.list_items(trip_id)


class ExpenseFlow:
    """
    Orchestrates shared expenses.

    Flow for a new expense:
    1. Validate the draft (errors block, warnings are returned)
    2. Split the amount equally across the involved companions
    3. Save
    4. Audit

    Balances are derived on every read from the stored rows.
    """

    def __init__(
        self,
        trip_storage: TripStorageInterface,
        expense_storage: ExpenseStorageInterface,
        validator: Optional[ExpenseValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        default_currency: Optional[str] = None,
    ):
        self._trips = trip_storage
        self._expenses = expense_storage
        self._validator = validator or ExpenseValidator()
        self._audit_logger = audit_logger
        self._default_currency = default_currency or get_settings().app.default_currency

    @staticmethod
    def roster_for(
        trip: Trip,
        viewer_id: Optional[str] = None,
        viewer_name: Optional[str] = None,
    ) -> Roster:
        """
        The roster the ledger is seeded with.

        A trip with no companions at all still shows its owner, when the
        owner is the one looking.
        """
        if trip.companions:
            return Roster(trip.companions)
        if viewer_id is not None and viewer_id == trip.owner_id:
            return Roster([viewer_name or viewer_id])
        return Roster()

    async def add_expense(
        self,
        trip_id: UUID,
        draft: ExpenseDraft,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Expense, ValidationResult]:
        """
        Validate, split and save a new expense.

        Returns:
            (saved expense, validation result carrying any warnings)

        Raises:
            ExpenseValidationError: The draft has blocking errors
        """
        correlation_id = correlation_id or create_correlation_id()
        trip = await _load_trip(self._trips, trip_id)

        result = self._validator.validate(draft, trip.companions)
        if not result.schema_valid:
            if self._audit_logger:
                await self._audit_logger.log_validation_failed(
                    trip_id=trip_id,
                    issues=[i.model_dump() for i in result.issues],
                    correlation_id=correlation_id,
                )
            raise ExpenseValidationError(result)

        expense = Expense(
            trip_id=trip_id,
            item_name=draft.item_name,
            amount=draft.amount,
            currency=draft.currency,
            payer=draft.payer,
            split_details=build_equal_split(draft.amount, draft.involved),
        )
        await self._expenses.save_expense(expense)

        if self._audit_logger:
            await self._audit_logger.log_expense_added(
                expense_id=expense.id,
                trip_id=trip_id,
                item_name=expense.item_name,
                amount=str(expense.amount),
                currency=expense.currency,
                payer=expense.payer,
                correlation_id=correlation_id,
            )
        return expense, result

    async def list_expenses(self, trip_id: UUID) -> list[Expense]:
        """Expenses of a trip, newest first."""
        expenses = await self._expenses.list_expenses(trip_id)
        return sorted(expenses, key=lambda e: e.created_at, reverse=True)

    async def delete_expense(
        self,
        expense_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        deleted = await self._expenses.delete_expense(expense_id)
        if deleted and self._audit_logger:
            await self._audit_logger.log_expense_deleted(
                expense_id=expense_id,
                correlation_id=correlation_id,
            )
        return deleted

    async def get_ledger(
        self,
        trip_id: UUID,
        viewer_id: Optional[str] = None,
        viewer_name: Optional[str] = None,
    ) -> Ledger:
        trip = await _load_trip(self._trips, trip_id)
        expenses = await self._expenses.list_expenses(trip_id)
        return compute_ledger(
            expenses,
            self.roster_for(trip, viewer_id, viewer_name),
            default_currency=self._default_currency,
        )

    async def get_summary(
        self,
        trip_id: UUID,
        viewer_id: Optional[str] = None,
        viewer_name: Optional[str] = None,
    ) -> ExpenseSummary:
        """Totals plus the rounded per-person balance lines."""
        trip = await _load_trip(self._trips, trip_id)
        expenses = await self._expenses.list_expenses(trip_id)
        roster = self.roster_for(trip, viewer_id, viewer_name)
        ledger = compute_ledger(expenses, roster, default_currency=self._default_currency)
        return ExpenseSummary(
            totals=ledger.totals,
            participants=summarize_balances(ledger, roster),
            expense_count=len(expenses),
        )


class WeatherFlow:
    """
    Orchestrates the weather page.

    Flow:
    1. Trip must have a destination and dates (else configuration incomplete)
    2. Geocode the destination (cached for the life of the process)
    3. Aggregate forecast + archive (cached for about an hour)
    """

    def __init__(
        self,
        trip_storage: TripStorageInterface,
        weather_client: Optional[DailyWeatherSource] = None,
        geocoding_client: Optional[GeocodingClient] = None,
        cache: Optional[TTLCache] = None,
        audit_logger: Optional[AuditLogger] = None,
        forecast_horizon_days: Optional[int] = None,
        cache_ttl_seconds: Optional[int] = None,
        geocoding_language: Optional[str] = None,
    ):
        settings = get_settings().weather
        self._trips = trip_storage
        self._weather = weather_client or OpenMeteoClient.from_settings(settings)
        self._geocoder = geocoding_client or GeocodingClient.from_settings(settings)
        self._cache = cache if cache is not None else TTLCache()
        self._audit_logger = audit_logger
        self._horizon = forecast_horizon_days if forecast_horizon_days is not None else settings.forecast_horizon_days
        self._ttl = cache_ttl_seconds if cache_ttl_seconds is not None else settings.weather_cache_ttl_seconds
        self._language = geocoding_language if geocoding_language is not None else settings.geocoding_language

    async def geocode(self, destination: str) -> GeoLocation:
        """
        Resolve a destination to coordinates.

        Raises:
            LocationNotFoundError: No match
            WeatherSourceError: Geocoding endpoint failed
        """
        key = ("geocode", participant_key(translate_place(destination)))
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        location = await self._geocoder.search(destination, language=self._language)
        self._cache.set(key, location)
        return location

    async def get_trip_weather(
        self,
        trip_id: UUID,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> WeatherReport:
        """
        Weather for every day of the trip.

        An empty `segments` list means both sources failed; render it as
        "no weather data", not as an error.

        Raises:
            ConfigurationIncompleteError: Destination or dates not set
            LocationNotFoundError: Destination could not be geocoded
            WeatherSourceError: Geocoding endpoint failed
        """
        trip = await _load_trip(self._trips, trip_id)

        missing = None
        if not trip.destination:
            missing = "destination"
        elif trip.date_range is None:
            missing = "dates"
        if missing:
            if self._audit_logger:
                await self._audit_logger.log_weather_configuration_incomplete(
                    trip_id=trip_id,
                    missing=missing,
                    correlation_id=correlation_id,
                )
            raise ConfigurationIncompleteError(missing)

        try:
            location = await self.geocode(trip.destination)
        except WeatherSourceError as e:
            if self._audit_logger:
                await self._audit_logger.log_external_service_error(
                    service="open-meteo-geocoding",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        today = today or date.today()
        key = (
            "weather",
            location.latitude,
            location.longitude,
            trip.start_date,
            trip.end_date,
            today,
        )
        segments = self._cache.get(key)
        if segments is None:
            segments = await aggregate_weather(
                location.coordinates,
                trip.start_date,
                trip.end_date,
                today,
                self._horizon,
                client=self._weather,
            )
            # Don't pin an outage for an hour
            if segments:
                self._cache.set(key, segments, ttl_seconds=self._ttl)

            if self._audit_logger:
                await self._audit_logger.log_weather_fetched(
                    trip_id=trip_id,
                    location=location.label,
                    segment_count=len(segments),
                    historical_count=sum(1 for s in segments if s.is_historical),
                    correlation_id=correlation_id,
                )

        return WeatherReport(
            destination=trip.destination,
            location=location,
            segments=list(segments),
        )


class MemoryFlow:
    """
    Orchestrates memories.

    Memories are private: listing only returns the caller's own, and
    only the author may read, change or delete one.
    """

    def __init__(
        self,
        memory_storage: MemoryStorageInterface,
        itinerary_storage: ItineraryStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._memories = memory_storage
        self._itinerary = itinerary_storage
        self._audit_logger = audit_logger

    async def list_memories(self, trip_id: UUID, user_id: str) -> list[TripMemory]:
        """The caller's memories on any item of the trip, newest first."""
        items = await self._itinerary.list_items(trip_id)
        if not items:
            return []
        return await self._memories.list_memories(
            [item.id for item in items], user_id=user_id
        )

    async def get_memory(self, memory_id: UUID, user_id: str) -> TripMemory:
        """
        Raises:
            NotFoundError: No such memory
            PermissionDeniedError: Caller is not the author
        """
        memory = await self._memories.get_memory(memory_id)
        if memory is None:
            raise NotFoundError(f"Memory not found: {memory_id}")
        if memory.user_id != user_id:
            raise PermissionDeniedError("Memories can only be accessed by their author")
        return memory

    async def create_memory(
        self,
        user_id: str,
        payload: MemoryCreate,
        correlation_id: Optional[UUID] = None,
    ) -> TripMemory:
        """
        Raises:
            NotFoundError: The itinerary item doesn't exist
        """
        if await self._itinerary.get_item(payload.trip_item_id) is None:
            raise NotFoundError(f"Itinerary item not found: {payload.trip_item_id}")

        memory = TripMemory(user_id=user_id, **payload.model_dump())
        await self._memories.save_memory(memory)

        if self._audit_logger:
            await self._audit_logger.log_memory_changed(
                memory_id=memory.id,
                event_type=AuditEventType.MEMORY_SAVED,
                user_id=user_id,
                correlation_id=correlation_id,
            )
        return memory

    async def update_memory(
        self,
        memory_id: UUID,
        user_id: str,
        changes: MemoryUpdate,
        correlation_id: Optional[UUID] = None,
    ) -> TripMemory:
        """Apply the fields set on `changes`; author only."""
        memory = await self.get_memory(memory_id, user_id)
        fields = changes.model_dump(exclude_unset=True)
        if fields.get("is_private", False) is None:
            del fields["is_private"]
        updated = TripMemory.model_validate({**memory.model_dump(), **fields})
        await self._memories.update_memory(updated)

        if self._audit_logger:
            await self._audit_logger.log_memory_changed(
                memory_id=memory_id,
                event_type=AuditEventType.MEMORY_UPDATED,
                user_id=user_id,
                correlation_id=correlation_id,
            )
        return updated

    async def delete_memory(
        self,
        memory_id: UUID,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Delete a memory; author only.

        Returns False if it did not exist.
        """
        memory = await self._memories.get_memory(memory_id)
        if memory is None:
            return False
        if memory.user_id != user_id:
            raise PermissionDeniedError("Memories can only be deleted by their author")

        deleted = await self._memories.delete_memory(memory_id)
        if deleted and self._audit_logger:
            await self._audit_logger.log_memory_changed(
                memory_id=memory_id,
                event_type=AuditEventType.MEMORY_DELETED,
                user_id=user_id,
                correlation_id=correlation_id,
            )
        return deleted


@dataclass
class AppComponents:
    """Everything the UI needs, wired together."""

    trip_flow: TripFlow
    expense_flow: ExpenseFlow
    weather_flow: WeatherFlow
    memory_flow: MemoryFlow
    audit_logger: AuditLogger
    sheets_client: Optional[GoogleSheetsClient] = None

    @property
    def uses_sheets(self) -> bool:
        return self.sheets_client is not None


def create_app_components(
    use_storage: bool = True,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False (or leave Sheets unconfigured) to run
                    on in-memory storage.
    """
    sheets_client = None

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            if not sheets_client.settings.spreadsheet_id:
                raise ValueError("GOOGLE_SHEETS_SPREADSHEET_ID is empty")
            trip_storage = GoogleSheetsTripStorage(sheets_client)
            expense_storage = GoogleSheetsExpenseStorage(sheets_client)
            itinerary_storage = GoogleSheetsItineraryStorage(sheets_client)
            memory_storage = GoogleSheetsMemoryStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None

    if sheets_client is None:
        trip_storage = InMemoryTripStorage()
        expense_storage = InMemoryExpenseStorage()
        itinerary_storage = InMemoryItineraryStorage()
        memory_storage = InMemoryMemoryStorage()
        audit_logger = AuditLogger()  # Local-only logging

    return AppComponents(
        trip_flow=TripFlow(
            trip_storage,
            itinerary_storage=itinerary_storage,
            audit_logger=audit_logger,
        ),
        expense_flow=ExpenseFlow(
            trip_storage,
            expense_storage,
            audit_logger=audit_logger,
        ),
        weather_flow=WeatherFlow(
            trip_storage,
            audit_logger=audit_logger,
        ),
        memory_flow=MemoryFlow(
            memory_storage,
            itinerary_storage,
            audit_logger=audit_logger,
        ),
        audit_logger=audit_logger,
        sheets_client=sheets_client,
    )
