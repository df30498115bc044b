"""Capacity-limited sign-up state synchronised with the shared record."""

from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from .models import (
    DAY_KEYS,
    DEFAULT_CAPACITY,
    EntryId,
    SignupRecord,
    VolunteerEntry,
    copy_record,
    empty_record,
    validate_day,
)
from .records import Found, LoadFailed, LoadResult, NotFound, RecordStore, RecordStoreError

logger = logging.getLogger("signup.store")


class ValidationFailure(str, Enum):
    """Reasons a submission was rejected before touching the record."""

    NO_DAYS_SELECTED = "no_days_selected"
    NAME_REQUIRED = "name_required"


@dataclass(frozen=True)
class SubmissionResult:
    """Outcome of :meth:`SignupStore.submit`."""

    failures: FrozenSet[ValidationFailure] = frozenset()
    added: Dict[str, VolunteerEntry] = field(default_factory=dict)
    skipped_days: Tuple[str, ...] = ()
    persisted: bool = False

    @property
    def accepted(self) -> bool:
        return not self.failures


def _utc_timestamp() -> str:
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _generate_entry_id() -> float:
    # Millisecond clock plus a random fraction; unique in practice, not by construction.
    return time.time() * 1000 + random.random()


class SignupStore:
    """Hold the current sign-up record and push it in full after every change."""

    def __init__(
        self,
        records: RecordStore,
        *,
        capacity: int = DEFAULT_CAPACITY,
        timestamp_factory: Callable[[], str] = _utc_timestamp,
        id_factory: Callable[[], EntryId] = _generate_entry_id,
    ) -> None:
        if capacity < 1:
            raise ValueError("Capacity must be at least one volunteer per day")
        self._records = records
        self._capacity = capacity
        self._timestamp_factory = timestamp_factory
        self._id_factory = id_factory
        self._record: SignupRecord = empty_record()
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def record(self) -> SignupRecord:
        return copy_record(self._record)

    def initialize(self) -> LoadResult:
        """Seed the in-memory record from the record store.

        A missing record and a failed load both start from an empty record.
        The tagged result is returned so callers can tell them apart.
        """

        with self._lock:
            result = self._records.load()
            if isinstance(result, Found):
                self._record = copy_record(result.record)
                logger.info(
                    "Loaded sign-ups (%s)",
                    ", ".join(f"{day}={len(self._record[day])}" for day in DAY_KEYS),
                )
            elif isinstance(result, NotFound):
                self._record = empty_record()
                logger.info("No sign-up record found; starting fresh")
            elif isinstance(result, LoadFailed):
                self._record = empty_record()
                logger.warning("Starting fresh after load failure: %s", result.reason)
        return result

    def entries(self, day: str) -> List[VolunteerEntry]:
        return list(self._record[validate_day(day)])

    def count(self, day: str) -> int:
        return len(self._record[validate_day(day)])

    def remaining(self, day: str) -> int:
        return max(self._capacity - self.count(day), 0)

    def is_full(self, day: str) -> bool:
        return self.count(day) >= self._capacity

    def occupancy(self) -> Dict[str, int]:
        return {day: len(self._record[day]) for day in DAY_KEYS}

    def select_days(self, selection: Iterable[str], requested: Iterable[str]) -> List[str]:
        """Toggle ``requested`` days in ``selection`` and return the new selection.

        Days already selected are removed. A day at capacity is never added.
        """

        current = [validate_day(day) for day in selection]
        for day in requested:
            validate_day(day)
            if day in current:
                current = [item for item in current if item != day]
            elif not self.is_full(day):
                current.append(day)
        return current

    def submit(self, name: Optional[str], selected_days: Sequence[str]) -> SubmissionResult:
        days: List[str] = []
        for day in selected_days:
            if validate_day(day) not in days:
                days.append(day)
        cleaned = (name or "").strip()

        failures = set()
        if not days:
            failures.add(ValidationFailure.NO_DAYS_SELECTED)
        if not cleaned:
            failures.add(ValidationFailure.NAME_REQUIRED)
        if failures:
            return SubmissionResult(failures=frozenset(failures))

        timestamp = self._timestamp_factory()
        added: Dict[str, VolunteerEntry] = {}
        skipped: List[str] = []
        with self._lock:
            updated = copy_record(self._record)
            for day in days:
                if len(updated[day]) >= self._capacity:
                    skipped.append(day)
                    continue
                entry = VolunteerEntry(name=cleaned, signed_up_at=timestamp, id=self._id_factory())
                updated[day] = [*updated[day], entry]
                added[day] = entry
            self._record = updated
            persisted = self._persist()

        if skipped:
            logger.info("Skipped full day(s) for %s: %s", cleaned, ", ".join(skipped))
        logger.info("Signed up %s for %s", cleaned, ", ".join(added) or "no days")
        return SubmissionResult(added=added, skipped_days=tuple(skipped), persisted=persisted)

    def remove_volunteer(self, day: str, entry_id: EntryId) -> bool:
        """Remove the first entry matching ``entry_id`` from ``day``."""

        validate_day(day)
        with self._lock:
            bucket = self._record[day]
            index = next((i for i, entry in enumerate(bucket) if entry.matches(entry_id)), None)
            removed = index is not None
            if removed:
                updated = copy_record(self._record)
                updated[day] = bucket[:index] + bucket[index + 1 :]
                self._record = updated
                logger.info("Removed entry %s from %s", entry_id, day)
            self._persist()
        return removed

    def clear_all(self) -> None:
        with self._lock:
            self._record = empty_record()
            logger.info("Cleared all sign-ups")
            self._persist()

    def _persist(self) -> bool:
        # Caller holds the lock. Failures are logged only; the in-memory change stays in place.
        try:
            self._records.save(self._record)
        except RecordStoreError as exc:
            logger.error("Save failed: %s", exc)
            return False
        return True


__all__ = ["SignupStore", "SubmissionResult", "ValidationFailure"]
