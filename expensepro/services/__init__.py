"""Services package."""

from expensepro.services.notify import LogNotifier, Notifier
from expensepro.services.storage import (
    Collection,
    GoogleSheetsClient,
    GoogleSheetsRecordStore,
    InMemoryRecordStore,
    NotFoundError,
    RecordStore,
    StoreConnectionError,
    StoreFailure,
)

__all__ = [
    # Notification
    "LogNotifier",
    "Notifier",
    # Storage
    "Collection",
    "GoogleSheetsClient",
    "GoogleSheetsRecordStore",
    "InMemoryRecordStore",
    "NotFoundError",
    "RecordStore",
    "StoreConnectionError",
    "StoreFailure",
]
