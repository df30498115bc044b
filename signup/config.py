"""Event configuration for the volunteer sign-up page."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Tuple

import yaml

from .models import DAY_KEYS


@dataclass(frozen=True)
class DaySlot:
    """Fixed details for one volunteer shift."""

    key: str
    label: str
    short_label: str
    role: str
    summary: str
    time_label: str
    calendar_title: str
    calendar_details: str
    start: datetime
    end: datetime

    @property
    def heading(self) -> str:
        return f"{self.label} • {self.time_label} • {self.role}"

    @staticmethod
    def from_dict(key: str, data: Mapping[str, object]) -> "DaySlot":
        """Create a :class:`DaySlot` from raw dictionary data."""
        required_fields = {"label", "role", "start", "end", "calendar_title"}
        missing = required_fields - data.keys()
        if missing:
            raise ValueError(
                f"Missing required fields for day '{key}': {', '.join(sorted(missing))}"
            )

        start = _parse_datetime(data["start"], f"{key}.start")
        end = _parse_datetime(data["end"], f"{key}.end")
        if end <= start:
            raise ValueError(f"Day '{key}' must end after it starts")

        label = str(data["label"])
        return DaySlot(
            key=key,
            label=label,
            short_label=str(data.get("short_label") or label),
            role=str(data["role"]),
            summary=str(data.get("summary") or ""),
            time_label=str(data.get("time_label") or f"{start:%H:%M} - {end:%H:%M}"),
            calendar_title=str(data["calendar_title"]),
            calendar_details=str(data.get("calendar_details") or ""),
            start=start,
            end=end,
        )


@dataclass(frozen=True)
class EventConfig:
    """Static description of the event volunteers sign up for."""

    name: str
    title: str
    venue: str
    address: str
    maps_query: str
    reminders: Tuple[str, ...]
    perks: Tuple[str, ...]
    days: Dict[str, DaySlot]

    @property
    def location(self) -> str:
        return f"{self.venue}, {self.address}"

    def day(self, key: str) -> DaySlot:
        try:
            return self.days[key]
        except KeyError as exc:
            raise ValueError(f"Unknown event day '{key}'") from exc

    def slots(self, keys: Optional[Iterable[str]] = None) -> Tuple[DaySlot, ...]:
        wanted = set(DAY_KEYS if keys is None else keys)
        return tuple(self.days[key] for key in DAY_KEYS if key in wanted)


def _parse_datetime(value: object, field_name: str) -> datetime:
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError as exc:
        raise ValueError(f"Invalid datetime for {field_name}: {value!r}") from exc


def _string_list(value: object) -> Tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(item) for item in value)  # type: ignore[union-attr]


def event_from_dict(raw: Mapping[str, object]) -> EventConfig:
    required_fields = {"name", "venue", "address", "days"}
    missing = required_fields - raw.keys()
    if missing:
        raise ValueError(f"Missing required event fields: {', '.join(sorted(missing))}")

    days_raw = raw["days"]
    if not isinstance(days_raw, Mapping):
        raise ValueError("Event configuration must define days as a mapping")
    absent = [key for key in DAY_KEYS if key not in days_raw]
    if absent:
        raise ValueError(f"Event configuration is missing day(s): {', '.join(absent)}")

    days = {key: DaySlot.from_dict(key, days_raw[key]) for key in DAY_KEYS}
    address = str(raw["address"])
    return EventConfig(
        name=str(raw["name"]),
        title=str(raw.get("title") or raw["name"]),
        venue=str(raw["venue"]),
        address=address,
        maps_query=str(raw.get("maps_query") or address),
        reminders=_string_list(raw.get("reminders")),
        perks=_string_list(raw.get("perks")),
        days=days,
    )


def load_event_config(config_path: Path) -> EventConfig:
    """Load the event description from a YAML file."""
    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    if not isinstance(raw, Mapping):
        raise ValueError("Event configuration file must contain a mapping")
    return event_from_dict(raw)


def resolve_config_path(env_value: Optional[str]) -> Path:
    """Resolve the path to the event configuration file."""
    if env_value:
        candidate = Path(env_value).expanduser().resolve(strict=False)
    else:
        candidate = (Path(__file__).resolve().parent.parent / "config" / "event.yaml").resolve(strict=False)
    return candidate


__all__ = [
    "DaySlot",
    "EventConfig",
    "event_from_dict",
    "load_event_config",
    "resolve_config_path",
]
