"""Services package."""

from tripshare.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    ExpenseStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    GoogleSheetsItineraryStorage,
    GoogleSheetsMemoryStorage,
    GoogleSheetsTripStorage,
    ItineraryStorageInterface,
    MemoryStorageInterface,
    NotFoundError,
    StorageError,
    TripStorageInterface,
)

__all__ = [
    "AuditStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "ExpenseStorageInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsExpenseStorage",
    "GoogleSheetsItineraryStorage",
    "GoogleSheetsMemoryStorage",
    "GoogleSheetsTripStorage",
    "ItineraryStorageInterface",
    "MemoryStorageInterface",
    "NotFoundError",
    "StorageError",
    "TripStorageInterface",
]
