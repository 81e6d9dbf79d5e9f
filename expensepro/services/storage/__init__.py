"""
Storage Services Package

Provides the abstract record store and its implementations:
in-memory (default, tests) and Google Sheets.
"""

from expensepro.services.storage.interface import (
    Collection,
    NotFoundError,
    Record,
    RecordStore,
    StoreConnectionError,
    StoreFailure,
)
from expensepro.services.storage.memory import InMemoryRecordStore
from expensepro.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsRecordStore,
)

__all__ = [
    # Interface
    "Collection",
    "Record",
    "RecordStore",
    # Exceptions
    "NotFoundError",
    "StoreConnectionError",
    "StoreFailure",
    # Implementations
    "InMemoryRecordStore",
    "GoogleSheetsClient",
    "GoogleSheetsRecordStore",
]
