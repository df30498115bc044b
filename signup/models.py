"""Domain models for the volunteer sign-up record."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Tuple, Union

logger = logging.getLogger("signup.models")

DAY_KEYS: Tuple[str, ...] = ("thursday", "sunday")
DEFAULT_CAPACITY = 15

EntryId = Union[int, float, str]
SignupRecord = Dict[str, List["VolunteerEntry"]]


@dataclass(frozen=True)
class VolunteerEntry:
    """A single volunteer signed up for one event day."""

    name: str
    signed_up_at: str
    id: EntryId

    def matches(self, entry_id: object) -> bool:
        """Return ``True`` when ``entry_id`` identifies this entry.

        Ids travel through HTML forms as text, so both sides are compared by
        their string form.
        """

        return str(self.id) == str(entry_id)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "signedUpAt": self.signed_up_at, "id": self.id}

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "VolunteerEntry":
        """Create a :class:`VolunteerEntry` from its stored JSON shape."""

        name = str(data.get("name") or "").strip()
        if not name:
            raise ValueError("Volunteer entry is missing a name")
        entry_id = data.get("id")
        if entry_id is None or isinstance(entry_id, (dict, list, bool)):
            raise ValueError(f"Volunteer entry for {name!r} has no usable id")
        return VolunteerEntry(
            name=name,
            signed_up_at=str(data.get("signedUpAt") or ""),
            id=entry_id,
        )


def validate_day(day: str) -> str:
    if day not in DAY_KEYS:
        raise ValueError(f"Unknown event day '{day}'")
    return day


def empty_record() -> SignupRecord:
    return {day: [] for day in DAY_KEYS}


def copy_record(record: Mapping[str, List[VolunteerEntry]]) -> SignupRecord:
    return {day: list(record.get(day, [])) for day in DAY_KEYS}


def _bucket_items(raw: Any) -> List[Any]:
    if raw is None:
        return []
    if isinstance(raw, list):
        return [item for item in raw if item is not None]
    if isinstance(raw, dict):
        # Sparse arrays come back from the hosted store as objects keyed by index.
        def _order(key: str) -> Tuple[int, Union[int, str]]:
            return (0, int(key)) if str(key).isdigit() else (1, str(key))

        return [raw[key] for key in sorted(raw, key=_order) if raw[key] is not None]
    logger.warning("Ignoring day bucket with unexpected type %s", type(raw).__name__)
    return []


def record_from_json(payload: Any) -> SignupRecord:
    """Decode a stored record, defaulting any missing day bucket to empty."""

    record = empty_record()
    if not isinstance(payload, Mapping):
        return record

    for day in DAY_KEYS:
        for item in _bucket_items(payload.get(day)):
            if not isinstance(item, Mapping):
                logger.warning("Dropping malformed %s entry: %r", day, item)
                continue
            try:
                record[day].append(VolunteerEntry.from_dict(item))
            except ValueError as exc:
                logger.warning("Dropping malformed %s entry: %s", day, exc)
    return record


def record_to_json(record: Mapping[str, List[VolunteerEntry]]) -> Dict[str, List[Dict[str, Any]]]:
    return {day: [entry.to_dict() for entry in record.get(day, [])] for day in DAY_KEYS}


__all__ = [
    "DAY_KEYS",
    "DEFAULT_CAPACITY",
    "EntryId",
    "SignupRecord",
    "VolunteerEntry",
    "copy_record",
    "empty_record",
    "record_from_json",
    "record_to_json",
    "validate_day",
]
