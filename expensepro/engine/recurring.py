"""
Recurring Scheduler

Catches recurring transactions up to "today", however long the
application has been idle.

The date arithmetic is a pure function,
`occurrence_dates(last_processed, today, frequency)`, with no store or
clock dependency. `RecurringScheduler` applies it to every template in
the store.

Monthly rule: one calendar month is added to the persisted marker and
the day is clamped to the last valid day of the target month
(Jan 31 -> Feb 28 -> Mar 28). Stepping always starts from the marker,
so a clamped day is not restored later.

Crash safety: an occurrence's identity is derived from
(template id, occurrence date). Writing the occurrence and then moving
the marker is therefore safe to repeat: if the marker write fails, the
next run re-upserts the same occurrence instead of adding a duplicate.
"""

import asyncio
from datetime import date, timedelta
from typing import Iterator, Optional
from uuid import NAMESPACE_URL, UUID, uuid5

from dateutil.relativedelta import relativedelta

from expensepro.logs import get_logger
from expensepro.models.records import Frequency, RecurrenceRule, Transaction
from expensepro.services.storage import Collection, RecordStore, StoreFailure


_OCCURRENCE_NAMESPACE = uuid5(NAMESPACE_URL, "expensepro:recurring-occurrence")


def add_period(day: date, frequency: Frequency) -> date:
    """Advance a date by one period of the given frequency."""
    if frequency == Frequency.DAILY:
        return day + timedelta(days=1)
    if frequency == Frequency.WEEKLY:
        return day + timedelta(days=7)
    # relativedelta clamps to the end of shorter months
    return day + relativedelta(months=1)


def occurrence_dates(
    last_processed: date,
    today: date,
    frequency: Frequency,
) -> Iterator[date]:
    """
    Yield every occurrence after `last_processed` up to and including `today`.

    Terminates because each step strictly advances and `today` is fixed.
    A marker already at or past today yields nothing.
    """
    current = add_period(last_processed, frequency)
    while current <= today:
        yield current
        current = add_period(current, frequency)


def occurrence_id(template_id: UUID, occurrence: date) -> UUID:
    """Deterministic identity of one occurrence of a template."""
    return uuid5(_OCCURRENCE_NAMESPACE, f"{template_id}:{occurrence.isoformat()}")


def make_occurrence(template: Transaction, occurrence: date) -> Transaction:
    """Copy a template into a dated occurrence with its own identity."""
    return template.model_copy(
        update={
            "id": occurrence_id(template.id, occurrence),
            "date": occurrence,
            "recurring": RecurrenceRule(
                frequency=template.recurring.frequency,
                last_processed=occurrence,
                occurrence_of=template.id,
            ),
        },
        deep=True,
    )


class RecurringScheduler:
    """
    Emits missed occurrences for every recurring template.

    `lock` is the ledger lock shared with the transaction flow, so a
    catch-up never interleaves with an edit of the template it is
    advancing, and two overlapping catch-ups cannot both read the same
    marker.
    """

    def __init__(self, store: RecordStore, lock: Optional[asyncio.Lock] = None):
        self._store = store
        self._lock = lock or asyncio.Lock()
        self._logger = get_logger(__name__)

    async def _current_template(self, template_id: UUID) -> Optional[Transaction]:
        stored = await self._store.get(Collection.EXPENSES, template_id)
        if stored is None or not stored.is_recurring_template:
            return None
        return stored

    async def _advance(self, template_id: UUID, occurrence: date) -> bool:
        """Move the stored template's marker, leaving every other field as stored."""
        current = await self._current_template(template_id)
        if current is None:
            return False
        advanced = current.recurring.model_copy(update={"last_processed": occurrence})
        await self._store.upsert(
            Collection.EXPENSES,
            current.model_copy(update={"recurring": advanced}),
        )
        return True

    async def catch_up(self, template: Transaction, today: date) -> int:
        """
        Emit the missed occurrences of one template.

        Each occurrence is written, then the template's marker moves to
        it. The template is re-read before each of those writes and only
        `last_processed` changes, so no other field is overwritten. A
        store failure stops the catch-up for this template with the
        marker at the last acknowledged occurrence.

        Returns:
            Number of occurrences emitted
        """
        rule = template.recurring
        if rule is None or not rule.is_template:
            return 0

        emitted = 0
        for occurrence in occurrence_dates(rule.last_processed, today, rule.frequency):
            source = await self._current_template(template.id)
            if source is None:
                break
            await self._store.upsert(Collection.EXPENSES, make_occurrence(source, occurrence))
            if not await self._advance(template.id, occurrence):
                break
            emitted += 1
            self._logger.info(
                "recurring_occurrence_emitted",
                template_id=str(template.id),
                date=occurrence.isoformat(),
            )
        return emitted

    async def run(self, today: date, correlation_id: Optional[UUID] = None) -> int:
        """
        Catch up every recurring template.

        Returns:
            Total occurrences emitted across all templates

        Raises:
            StoreFailure: On the first failing read or write; occurrences
                acknowledged before the failure stay committed
        """
        logger = self._logger.bind(correlation_id=str(correlation_id) if correlation_id else None)
        async with self._lock:
            transactions = await self._store.fetch_all(Collection.EXPENSES)
            templates = [t for t in transactions if t.is_recurring_template]

            total = 0
            for template in templates:
                try:
                    total += await self.catch_up(template, today)
                except StoreFailure as e:
                    logger.error(
                        "recurring_catch_up_failed",
                        template_id=str(template.id),
                        emitted_before_failure=total,
                        error=str(e),
                    )
                    raise

            logger.info("recurring_run_completed", templates=len(templates), emitted=total)
            return total
