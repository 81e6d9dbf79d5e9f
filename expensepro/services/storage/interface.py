"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep reconciliation logic decoupled from storage implementation

The interface is intentionally small: fetch-all, get, upsert-by-id and
delete-by-id per collection, plus the single vehicle settings object.
There are NO transactions across collections; callers issuing multi-record
updates must tolerate partial application.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional, Union
from uuid import UUID

from expensepro.models.records import DeliverySession, Loan, Transaction
from expensepro.models.vehicle import VehicleSettings


Record = Union[Transaction, Loan, DeliverySession]


class Collection(str, Enum):
    """Record collections, named as in the backup document."""
    EXPENSES = "expenses"
    LOANS = "loans"
    DELIVERY = "delivery"

    @property
    def model(self) -> type:
        return _COLLECTION_MODELS[self]


_COLLECTION_MODELS: dict[Collection, type] = {
    Collection.EXPENSES: Transaction,
    Collection.LOANS: Loan,
    Collection.DELIVERY: DeliverySession,
}


class RecordStore(ABC):
    """
    Abstract interface for the persistent record store.

    Every write either completes or raises StoreFailure. Engine code
    treats a returned write as durable.
    """

    @abstractmethod
    async def fetch_all(self, collection: Collection) -> list[Record]:
        """
        Fetch every record in a collection.

        Raises:
            StoreFailure: If the read fails
        """
        pass

    @abstractmethod
    async def get(self, collection: Collection, record_id: UUID) -> Optional[Record]:
        """
        Retrieve a record by its ID.

        Returns:
            The record if found, None otherwise
        """
        pass

    @abstractmethod
    async def upsert(self, collection: Collection, record: Record) -> None:
        """
        Insert a record, or replace the one with the same ID.

        Raises:
            StoreFailure: If the write fails
        """
        pass

    @abstractmethod
    async def delete(self, collection: Collection, record_id: UUID) -> bool:
        """
        Delete a record by ID.

        Returns:
            True if a record was deleted, False if none had that ID
        """
        pass

    @abstractmethod
    async def load_settings(self) -> Optional[VehicleSettings]:
        """Load the vehicle settings, or None if never saved."""
        pass

    @abstractmethod
    async def save_settings(self, settings: VehicleSettings) -> None:
        """
        Replace the stored vehicle settings.

        Raises:
            StoreFailure: If the write fails
        """
        pass


class StoreFailure(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StoreFailure):
    """Entity not found in storage."""
    pass


class StoreConnectionError(StoreFailure):
    """Could not connect to storage backend."""
    pass
