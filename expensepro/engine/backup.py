"""
Backup Export / Import

Export snapshots the vehicle settings and the three collections.
Import re-upserts every record by identity (overwrite, not merge) and
replaces the vehicle settings through the Fuel Ledger, so the restored
fuel quantity becomes authoritative only once it is persisted.
"""

from typing import Union

from pydantic import ValidationError

from expensepro.engine.fuel import FuelLedger
from expensepro.errors import ValidationFailure
from expensepro.logs import get_logger
from expensepro.models.backup import BackupDocument
from expensepro.services.storage import Collection, RecordStore


logger = get_logger(__name__)


async def export_backup(store: RecordStore, fuel: FuelLedger) -> BackupDocument:
    """Snapshot everything the engine owns."""
    document = BackupDocument(
        settings=fuel.settings,
        expenses=await store.fetch_all(Collection.EXPENSES),
        loans=await store.fetch_all(Collection.LOANS),
        delivery=await store.fetch_all(Collection.DELIVERY),
    )
    logger.info(
        "backup_exported",
        expenses=len(document.expenses),
        loans=len(document.loans),
        delivery=len(document.delivery),
    )
    return document


def parse_backup(raw: Union[str, bytes]) -> BackupDocument:
    """
    Parse a JSON backup file.

    Raises:
        ValidationFailure: If the document is malformed
    """
    try:
        return BackupDocument.model_validate_json(raw)
    except ValidationError as e:
        raise ValidationFailure.single("backup", "invalid_document", str(e))


async def import_backup(
    store: RecordStore,
    fuel: FuelLedger,
    document: Union[BackupDocument, str, bytes],
) -> BackupDocument:
    """
    Restore a backup over the current data.

    Records not present in the backup are left untouched; records with
    the same identity are replaced.

    Raises:
        ValidationFailure: If a raw document is malformed
        StoreFailure: If any write fails (earlier writes stay applied;
            re-running the import is safe)
    """
    if not isinstance(document, BackupDocument):
        document = parse_backup(document)

    for collection, records in (
        (Collection.EXPENSES, document.expenses),
        (Collection.LOANS, document.loans),
        (Collection.DELIVERY, document.delivery),
    ):
        for record in records:
            await store.upsert(collection, record)

    await fuel.replace_settings(document.settings)
    logger.info(
        "backup_imported",
        expenses=len(document.expenses),
        loans=len(document.loans),
        delivery=len(document.delivery),
        exported_at=document.export_date.isoformat(),
    )
    return document
