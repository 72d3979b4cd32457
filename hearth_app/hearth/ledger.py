"""Session ledger: completed records and the categories they are filed under."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, time
from typing import Callable, List, Optional

from .errors import LastCategoryError, MergeTargetRequired, UnknownCategoryError
from .models import FocusRecord
from .storage import Storage

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeletionPlan:
    category: str
    record_count: int
    suggested_target: Optional[str]

    @property
    def needs_decision(self) -> bool:
        return self.record_count > 0


@dataclass(frozen=True)
class DeletionOutcome:
    category: str
    merged: int = 0
    removed: int = 0
    merge_target: Optional[str] = None


class SessionLedger:
    """In-memory ledger snapshot written through to ``Storage`` on every mutation.

    Records are kept most-recent-first. Listeners registered with
    :meth:`subscribe` are called after each mutation has been persisted.
    """

    def __init__(self, storage: Storage) -> None:
        self.storage = storage
        self._records: List[FocusRecord] = storage.load_records()
        self._categories: List[str] = storage.load_categories()
        self._listeners: List[Callable[[], None]] = []
        LOGGER.info("Loaded %s records in %s categories", len(self._records), len(self._categories))

    @property
    def records(self) -> List[FocusRecord]:
        return list(self._records)

    @property
    def categories(self) -> List[str]:
        return list(self._categories)

    def subscribe(self, callback: Callable[[], None]) -> None:
        self._listeners.append(callback)

    def _notify(self) -> None:
        for callback in list(self._listeners):
            try:
                callback()
            except Exception:  # pragma: no cover
                LOGGER.exception("Ledger listener failed")

    def _persist_records(self, records: List[FocusRecord]) -> None:
        # the snapshot only moves once the write has succeeded
        self.storage.save_records(records)
        self._records = records

    def _persist_categories(self, categories: List[str]) -> None:
        self.storage.save_categories(categories)
        self._categories = categories

    def get(self, record_id: str) -> FocusRecord:
        for record in self._records:
            if record.id == record_id:
                return record
        raise KeyError(record_id)

    def records_for(self, category: str) -> List[FocusRecord]:
        return [record for record in self._records if record.category == category]

    # Records
    def append(self, record: FocusRecord) -> FocusRecord:
        self._persist_records([record] + self._records)
        LOGGER.info("Recorded %s min of %s under %s", record.duration_minutes, record.activity_name, record.category)
        self._notify()
        return record

    def replace_all(self, records: List[FocusRecord]) -> None:
        for record in records:
            if not record.id:
                raise ValueError("Records must carry a non-empty id")
        self._persist_records(list(records))
        LOGGER.debug("Replaced ledger with %s records", len(self._records))
        self._notify()

    def update_record(
        self,
        record_id: str,
        category: Optional[str] = None,
        duration_minutes: Optional[int] = None,
        start_time_of_day: Optional[time] = None,
    ) -> FocusRecord:
        """Edit one record in place; the start time keeps the record's original date."""
        current = self.get(record_id)
        changes = {}
        if category is not None:
            changes["category"] = category
        if duration_minutes is not None:
            changes["duration_minutes"] = duration_minutes
        if start_time_of_day is not None:
            started = datetime.fromtimestamp(current.timestamp_millis / 1000)
            moved = started.replace(
                hour=start_time_of_day.hour, minute=start_time_of_day.minute, second=0, microsecond=0
            )
            changes["timestamp_millis"] = int(moved.timestamp() * 1000)
        updated = current.evolve(**changes)
        self.replace_all([updated if record.id == record_id else record for record in self._records])
        return updated

    def delete_record(self, record_id: str) -> FocusRecord:
        removed = self.get(record_id)
        self.replace_all([record for record in self._records if record.id != record_id])
        LOGGER.info("Deleted record %s", record_id)
        return removed

    # Categories
    def add_category(self, name: str) -> Optional[str]:
        trimmed = (name or "").strip()
        if not trimmed or trimmed in self._categories:
            LOGGER.info("Rejected category name %r", name)
            return None
        self._persist_categories(self._categories + [trimmed])
        LOGGER.info("Added category %s", trimmed)
        self._notify()
        return trimmed

    def plan_category_deletion(self, name: str) -> DeletionPlan:
        if name not in self._categories:
            raise UnknownCategoryError(name)
        suggested = next((cat for cat in self._categories if cat != name), None)
        return DeletionPlan(category=name, record_count=len(self.records_for(name)), suggested_target=suggested)

    def delete_category(self, name: str, merge_target: Optional[str] = None, purge: bool = False) -> DeletionOutcome:
        """Remove a category, re-filing or purging the records that use it.

        Raises ``LastCategoryError`` for the last category and
        ``MergeTargetRequired`` when records reference it and the caller chose
        neither a merge target nor a purge.
        """
        plan = self.plan_category_deletion(name)
        if len(self._categories) <= 1:
            raise LastCategoryError("Keep at least one category")
        if merge_target is not None and (merge_target == name or merge_target not in self._categories):
            raise UnknownCategoryError(merge_target)

        outcome = DeletionOutcome(category=name)
        if plan.needs_decision:
            if merge_target is not None:
                self._persist_records([
                    record.evolve(category=merge_target) if record.category == name else record
                    for record in self._records
                ])
                outcome = DeletionOutcome(category=name, merged=plan.record_count, merge_target=merge_target)
            elif purge:
                self._persist_records([record for record in self._records if record.category != name])
                outcome = DeletionOutcome(category=name, removed=plan.record_count)
            else:
                raise MergeTargetRequired(name, plan.record_count, plan.suggested_target)

        self._persist_categories([cat for cat in self._categories if cat != name])
        LOGGER.info(
            "Deleted category %s (merged %s into %s, removed %s)",
            name,
            outcome.merged,
            outcome.merge_target,
            outcome.removed,
        )
        self._notify()
        return outcome
