"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the hosted store for shared trips because:
1. Companions can look at the raw expense rows directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (a trip has a few hundred rows at most)
- No transactions (we handle this with careful ordering)
- Limited query capabilities (we filter in Python)

One worksheet per table. Nested fields (companions, split details, audit
details) are stored as JSON text in a single cell.
"""

import json
from datetime import date, datetime, time
from typing import Callable, Optional, TypeVar
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from tripshare.config import get_settings
from tripshare.models.audit import AuditEvent, AuditEventType, AuditSeverity
from tripshare.models.expense import Expense
from tripshare.models.memory import TripMemory
from tripshare.models.trip import ItineraryItem, Trip, TripStatus
from tripshare.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    ExpenseStorageInterface,
    ItineraryStorageInterface,
    MemoryStorageInterface,
    NotFoundError,
    StorageError,
    TripStorageInterface,
)


logger = structlog.get_logger(__name__)

T = TypeVar("T")


TRIP_COLUMNS = [
    "id",
    "name",
    "owner_id",
    "destination",
    "start_date",
    "end_date",
    "companions_json",
    "status",
    "cover_image",
    "created_at",
    "updated_at",
]

EXPENSE_COLUMNS = [
    "id",
    "trip_id",
    "created_at",
    "item_name",
    "amount",
    "currency",
    "payer",
    "split_details_json",
]

ITINERARY_COLUMNS = [
    "id",
    "trip_id",
    "day",
    "title",
    "start_time",
    "location",
    "notes",
    "created_at",
]

MEMORY_COLUMNS = [
    "id",
    "trip_item_id",
    "user_id",
    "content",
    "mood_emoji",
    "external_link",
    "is_private",
    "created_at",
]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


def _cell(row: list, index: int, default: str = "") -> str:
    """Read a cell, tolerating short rows and empty cells."""
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


def _optional_date(text: str) -> Optional[date]:
    return date.fromisoformat(text) if text else None


# =============================================================================
# ROW CONVERSION
# =============================================================================

def trip_to_row(trip: Trip) -> list:
    return [
        str(trip.id),
        trip.name,
        trip.owner_id,
        trip.destination or "",
        trip.start_date.isoformat() if trip.start_date else "",
        trip.end_date.isoformat() if trip.end_date else "",
        json.dumps(trip.companions, ensure_ascii=False),
        trip.status.value,
        trip.cover_image,
        trip.created_at.isoformat(),
        trip.updated_at.isoformat(),
    ]


def row_to_trip(row: list) -> Trip:
    companions_json = _cell(row, 6)
    companions = json.loads(companions_json) if companions_json else []
    return Trip(
        id=UUID(_cell(row, 0)),
        name=_cell(row, 1),
        owner_id=_cell(row, 2),
        destination=_cell(row, 3) or None,
        start_date=_optional_date(_cell(row, 4)),
        end_date=_optional_date(_cell(row, 5)),
        companions=[str(name) for name in companions if str(name).strip()],
        status=TripStatus(_cell(row, 7, TripStatus.ACTIVE.value)),
        cover_image=_cell(row, 8) or Trip.model_fields["cover_image"].default,
        created_at=datetime.fromisoformat(_cell(row, 9)),
        updated_at=datetime.fromisoformat(_cell(row, 10) or _cell(row, 9)),
    )


def expense_to_row(expense: Expense) -> list:
    return [
        str(expense.id),
        str(expense.trip_id),
        expense.created_at.isoformat(),
        expense.item_name,
        str(expense.amount),
        expense.currency,
        expense.payer,
        json.dumps(
            {name: str(share) for name, share in expense.split_details.items()},
            ensure_ascii=False,
        ),
    ]


def row_to_expense(row: list) -> Expense:
    """
    Convert a spreadsheet row to an Expense.

    Amount and split cells go through the model's lenient coercion, so a
    hand-edited cell never makes the row unreadable.
    """
    return Expense(
        id=UUID(_cell(row, 0)),
        trip_id=UUID(_cell(row, 1)),
        created_at=datetime.fromisoformat(_cell(row, 2)),
        item_name=_cell(row, 3),
        amount=_cell(row, 4),
        currency=_cell(row, 5),
        payer=_cell(row, 6),
        split_details=_cell(row, 7),
    )


def item_to_row(item: ItineraryItem) -> list:
    return [
        str(item.id),
        str(item.trip_id),
        item.day.isoformat(),
        item.title,
        item.start_time.isoformat(timespec="minutes") if item.start_time else "",
        item.location or "",
        item.notes or "",
        item.created_at.isoformat(),
    ]


def row_to_item(row: list) -> ItineraryItem:
    return ItineraryItem(
        id=UUID(_cell(row, 0)),
        trip_id=UUID(_cell(row, 1)),
        day=date.fromisoformat(_cell(row, 2)),
        title=_cell(row, 3),
        start_time=time.fromisoformat(_cell(row, 4)) if _cell(row, 4) else None,
        location=_cell(row, 5) or None,
        notes=_cell(row, 6) or None,
        created_at=datetime.fromisoformat(_cell(row, 7)),
    )


def memory_to_row(memory: TripMemory) -> list:
    return [
        str(memory.id),
        str(memory.trip_item_id),
        memory.user_id,
        memory.content or "",
        memory.mood_emoji or "",
        memory.external_link or "",
        str(memory.is_private),
        memory.created_at.isoformat(),
    ]


def row_to_memory(row: list) -> TripMemory:
    return TripMemory(
        id=UUID(_cell(row, 0)),
        trip_item_id=UUID(_cell(row, 1)),
        user_id=_cell(row, 2),
        content=_cell(row, 3) or None,
        mood_emoji=_cell(row, 4) or None,
        external_link=_cell(row, 5) or None,
        is_private=_cell(row, 6, "True").lower() == "true",
        created_at=datetime.fromisoformat(_cell(row, 7)),
    )


def row_to_event(row: list) -> AuditEvent:
    return AuditEvent(
        event_id=UUID(_cell(row, 0)),
        timestamp=datetime.fromisoformat(_cell(row, 1)),
        event_type=AuditEventType(_cell(row, 2)),
        severity=AuditSeverity(_cell(row, 3)),
        entity_type=_cell(row, 4) or None,
        entity_id=UUID(_cell(row, 5)) if _cell(row, 5) else None,
        correlation_id=UUID(_cell(row, 6)) if _cell(row, 6) else None,
        description=_cell(row, 7),
        details=json.loads(_cell(row, 8)) if _cell(row, 8) else {},
        error_message=_cell(row, 9) or None,
        is_user_action=_cell(row, 10).lower() == "true",
    )


# =============================================================================
# CLIENT
# =============================================================================

class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._worksheets: dict[str, gspread.Worksheet] = {}
        self._settings = get_settings().google_sheets

    @property
    def settings(self):
        return self._settings

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(
        self,
        title: str,
        columns: list[str],
        rows: int = 1000,
    ) -> gspread.Worksheet:
        """Get or create a worksheet with the given header row."""
        if title not in self._worksheets:
            spreadsheet = self.get_spreadsheet()
            try:
                sheet = spreadsheet.worksheet(title)
            except gspread.WorksheetNotFound:
                sheet = spreadsheet.add_worksheet(
                    title=title,
                    rows=rows,
                    cols=len(columns),
                )
                sheet.append_row(columns)
                logger.info("worksheet_created", title=title)
            self._worksheets[title] = sheet
        return self._worksheets[title]


class _SheetTable:
    """
    Shared plumbing for one worksheet holding one entity per row.

    The first column is always the entity id.
    """

    columns: list[str] = []
    entity: str = "row"

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _sheet_title(self) -> str:
        raise NotImplementedError

    def _sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(self._sheet_title(), self.columns)

    def _data_rows(self) -> list[list]:
        """All rows below the header."""
        return self._sheet().get_all_values()[1:]

    def _find_row_number(self, entity_id: UUID) -> Optional[int]:
        """1-based sheet row number of an entity, None if absent."""
        for idx, row in enumerate(self._data_rows(), start=2):
            if row and row[0] == str(entity_id):
                return idx
        return None

    def _parse_rows(
        self,
        rows: list[list],
        convert: Callable[[list], T],
    ) -> list[T]:
        parsed = []
        for row in rows:
            if not row or not row[0]:
                continue
            try:
                parsed.append(convert(row))
            except (ValueError, TypeError) as e:
                logger.warning(
                    "malformed_row_skipped",
                    entity=self.entity,
                    row_id=row[0],
                    error=str(e),
                )
        return parsed

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _append(self, row: list) -> None:
        self._sheet().append_row(row, value_input_option="RAW")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _replace(self, row_number: int, row: list) -> None:
        self._sheet().update(
            range_name=f"A{row_number}",
            values=[row],
            value_input_option="RAW",
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _delete(self, row_number: int) -> None:
        self._sheet().delete_rows(row_number)


# =============================================================================
# TABLES
# =============================================================================

class GoogleSheetsTripStorage(_SheetTable, TripStorageInterface):
    """Trips, one per row."""

    columns = TRIP_COLUMNS
    entity = "trip"

    def _sheet_title(self) -> str:
        return self._client.settings.trips_sheet_name

    async def save_trip(self, trip: Trip) -> bool:
        try:
            if self._find_row_number(trip.id) is not None:
                raise DuplicateError(f"Trip already exists: {trip.id}")
            self._append(trip_to_row(trip))
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save trip: {e}")

    async def get_trip(self, trip_id: UUID) -> Optional[Trip]:
        try:
            for row in self._data_rows():
                if row and row[0] == str(trip_id):
                    return row_to_trip(row)
            return None
        except Exception as e:
            raise StorageError(f"Failed to get trip: {e}")

    async def update_trip(self, trip: Trip) -> bool:
        try:
            row_number = self._find_row_number(trip.id)
            if row_number is None:
                raise NotFoundError(f"Trip not found: {trip.id}")
            self._replace(row_number, trip_to_row(trip))
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update trip: {e}")

    async def list_trips(self, limit: int = 100) -> list[Trip]:
        try:
            trips = self._parse_rows(self._data_rows(), row_to_trip)
        except Exception as e:
            raise StorageError(f"Failed to list trips: {e}")
        trips.sort(key=lambda t: t.created_at, reverse=True)
        return trips[:limit]


class GoogleSheetsExpenseStorage(_SheetTable, ExpenseStorageInterface):
    """
    Expenses, one per row.

    Split details are JSON-serialized with shares as decimal strings.
    """

    columns = EXPENSE_COLUMNS
    entity = "expense"

    def _sheet_title(self) -> str:
        return self._client.settings.expenses_sheet_name

    async def save_expense(self, expense: Expense) -> bool:
        try:
            if self._find_row_number(expense.id) is not None:
                raise DuplicateError(f"Expense already exists: {expense.id}")
            self._append(expense_to_row(expense))
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save expense: {e}")

    async def get_expense(self, expense_id: UUID) -> Optional[Expense]:
        try:
            for row in self._data_rows():
                if row and row[0] == str(expense_id):
                    return row_to_expense(row)
            return None
        except Exception as e:
            raise StorageError(f"Failed to get expense: {e}")

    async def delete_expense(self, expense_id: UUID) -> bool:
        try:
            row_number = self._find_row_number(expense_id)
            if row_number is None:
                return False
            self._delete(row_number)
            return True
        except Exception as e:
            raise StorageError(f"Failed to delete expense: {e}")

    async def list_expenses(self, trip_id: UUID) -> list[Expense]:
        try:
            rows = [
                row for row in self._data_rows()
                if len(row) > 1 and row[1] == str(trip_id)
            ]
            expenses = self._parse_rows(rows, row_to_expense)
        except Exception as e:
            raise StorageError(f"Failed to list expenses: {e}")
        expenses.sort(key=lambda e: e.created_at, reverse=True)
        return expenses


class GoogleSheetsItineraryStorage(_SheetTable, ItineraryStorageInterface):
    """Itinerary items, one per row."""

    columns = ITINERARY_COLUMNS
    entity = "itinerary_item"

    def _sheet_title(self) -> str:
        return self._client.settings.itinerary_sheet_name

    async def save_item(self, item: ItineraryItem) -> bool:
        try:
            self._append(item_to_row(item))
            return True
        except Exception as e:
            raise StorageError(f"Failed to save itinerary item: {e}")

    async def get_item(self, item_id: UUID) -> Optional[ItineraryItem]:
        try:
            for row in self._data_rows():
                if row and row[0] == str(item_id):
                    return row_to_item(row)
            return None
        except Exception as e:
            raise StorageError(f"Failed to get itinerary item: {e}")

    async def list_items(self, trip_id: UUID) -> list[ItineraryItem]:
        try:
            rows = [
                row for row in self._data_rows()
                if len(row) > 1 and row[1] == str(trip_id)
            ]
            items = self._parse_rows(rows, row_to_item)
        except Exception as e:
            raise StorageError(f"Failed to list itinerary items: {e}")
        items.sort(key=lambda i: (i.day, i.start_time or time.min))
        return items


class GoogleSheetsMemoryStorage(_SheetTable, MemoryStorageInterface):
    """Memories, one per row."""

    columns = MEMORY_COLUMNS
    entity = "memory"

    def _sheet_title(self) -> str:
        return self._client.settings.memories_sheet_name

    async def save_memory(self, memory: TripMemory) -> bool:
        try:
            self._append(memory_to_row(memory))
            return True
        except Exception as e:
            raise StorageError(f"Failed to save memory: {e}")

    async def get_memory(self, memory_id: UUID) -> Optional[TripMemory]:
        try:
            for row in self._data_rows():
                if row and row[0] == str(memory_id):
                    return row_to_memory(row)
            return None
        except Exception as e:
            raise StorageError(f"Failed to get memory: {e}")

    async def update_memory(self, memory: TripMemory) -> bool:
        try:
            row_number = self._find_row_number(memory.id)
            if row_number is None:
                raise NotFoundError(f"Memory not found: {memory.id}")
            self._replace(row_number, memory_to_row(memory))
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update memory: {e}")

    async def delete_memory(self, memory_id: UUID) -> bool:
        try:
            row_number = self._find_row_number(memory_id)
            if row_number is None:
                return False
            self._delete(row_number)
            return True
        except Exception as e:
            raise StorageError(f"Failed to delete memory: {e}")

    async def list_memories(
        self,
        trip_item_ids: list[UUID],
        user_id: Optional[str] = None,
    ) -> list[TripMemory]:
        wanted = {str(item_id) for item_id in trip_item_ids}
        try:
            rows = [
                row for row in self._data_rows()
                if len(row) > 2
                and row[1] in wanted
                and (user_id is None or row[2] == user_id)
            ]
            memories = self._parse_rows(rows, row_to_memory)
        except Exception as e:
            raise StorageError(f"Failed to list memories: {e}")
        memories.sort(key=lambda m: m.created_at, reverse=True)
        return memories


class GoogleSheetsAuditStorage(_SheetTable, AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    columns = AUDIT_COLUMNS
    entity = "audit_event"

    def _sheet_title(self) -> str:
        return self._client.settings.audit_sheet_name

    def _sheet(self) -> gspread.Worksheet:
        # More rows for audit log
        return self._client.get_worksheet(
            self._sheet_title(), self.columns, rows=5000
        )

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            self._append(event.to_sheets_row())
            return True
        except Exception as e:
            # Audit logging should not break the main flow
            logger.warning(
                "audit_write_failed",
                event_id=str(event.event_id),
                error=str(e),
            )
            return False

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        try:
            rows = [
                row for row in self._data_rows()
                if len(row) > 6 and row[6] == str(correlation_id)
            ]
            events = self._parse_rows(rows, row_to_event)
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        try:
            rows = [
                row for row in self._data_rows()
                if len(row) > 5
                and row[4] == entity_type
                and row[5] == str(entity_id)
            ]
            events = self._parse_rows(rows, row_to_event)
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        try:
            events = self._parse_rows(self._data_rows(), row_to_event)
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
