"""
In-Memory Storage Implementation

Used for tests and as the default backend. Records are deep-copied on
the way in and out so nothing outside the store can change stored state
without going through upsert.
"""

from typing import Optional
from uuid import UUID

from expensepro.models.vehicle import VehicleSettings
from expensepro.services.storage.interface import Collection, Record, RecordStore


class InMemoryRecordStore(RecordStore):
    """Dict-backed record store."""

    def __init__(self):
        self._collections: dict[Collection, dict[UUID, Record]] = {
            collection: {} for collection in Collection
        }
        self._settings: Optional[VehicleSettings] = None

    async def fetch_all(self, collection: Collection) -> list[Record]:
        return [
            record.model_copy(deep=True)
            for record in self._collections[collection].values()
        ]

    async def get(self, collection: Collection, record_id: UUID) -> Optional[Record]:
        record = self._collections[collection].get(record_id)
        return record.model_copy(deep=True) if record is not None else None

    async def upsert(self, collection: Collection, record: Record) -> None:
        if not isinstance(record, collection.model):
            raise TypeError(
                f"{type(record).__name__} cannot be stored in {collection.value}"
            )
        self._collections[collection][record.id] = record.model_copy(deep=True)

    async def delete(self, collection: Collection, record_id: UUID) -> bool:
        return self._collections[collection].pop(record_id, None) is not None

    async def load_settings(self) -> Optional[VehicleSettings]:
        if self._settings is None:
            return None
        return self._settings.model_copy(deep=True)

    async def save_settings(self, settings: VehicleSettings) -> None:
        self._settings = settings.model_copy(deep=True)
