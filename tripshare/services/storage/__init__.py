"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the hosted backend; the in-memory backend serves tests and
the offline demo.
"""

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
from tripshare.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    GoogleSheetsItineraryStorage,
    GoogleSheetsMemoryStorage,
    GoogleSheetsTripStorage,
)
from tripshare.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryExpenseStorage,
    InMemoryItineraryStorage,
    InMemoryMemoryStorage,
    InMemoryTripStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "ExpenseStorageInterface",
    "ItineraryStorageInterface",
    "MemoryStorageInterface",
    "TripStorageInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsExpenseStorage",
    "GoogleSheetsItineraryStorage",
    "GoogleSheetsMemoryStorage",
    "GoogleSheetsTripStorage",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryExpenseStorage",
    "InMemoryItineraryStorage",
    "InMemoryMemoryStorage",
    "InMemoryTripStorage",
]
