"""Calendar, map and mail links for confirmed volunteers."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, List, Optional
from urllib.parse import quote, quote_plus

from .config import DaySlot, EventConfig

GOOGLE_CALENDAR_URL = "https://calendar.google.com/calendar/render"
MAPS_URL = "https://maps.google.com/"

_URI_COMPONENT_SAFE = "-_.!~*'()"
_ICS_LINE_LIMIT = 75


def _encode(value: str) -> str:
    return quote(value, safe=_URI_COMPONENT_SAFE)


def _compact(value: datetime) -> str:
    return value.strftime("%Y%m%dT%H%M%S")


def first_name(name: str) -> str:
    parts = (name or "").split()
    return parts[0] if parts else ""


def google_calendar_url(slot: DaySlot, event: EventConfig) -> str:
    """Return a Google Calendar "add event" link for ``slot``."""

    query = "&".join(
        [
            "action=TEMPLATE",
            f"text={_encode(slot.calendar_title)}",
            f"dates={_compact(slot.start)}/{_compact(slot.end)}",
            f"location={_encode(event.location)}",
            f"details={_encode(slot.calendar_details)}",
        ]
    )
    return f"{GOOGLE_CALENDAR_URL}?{query}"


def maps_url(event: EventConfig) -> str:
    return f"{MAPS_URL}?q={quote_plus(event.maps_query, safe=',')}"


def reminder_mailto(name: str, slots: Iterable[DaySlot], event: EventConfig) -> str:
    """Build a ``mailto:`` link pre-filled with the volunteer's shifts."""

    lines: List[str] = [
        f"Hi {first_name(name)}!",
        "",
        f"You signed up to volunteer for the {event.title}:",
        "",
    ]
    lines.extend(f"📅 {slot.heading}" for slot in slots)
    lines.extend(["", f"📍 {event.location}"])
    if event.reminders:
        lines.extend(["", "Don't forget:"])
        lines.extend(f"• {reminder}" for reminder in event.reminders)

    subject = f"{event.name} Volunteer Reminder"
    return f"mailto:?subject={_encode(subject)}&body={_encode(chr(10).join(lines))}"


def _escape_text(value: str) -> str:
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def _fold(line: str) -> List[str]:
    encoded = line.encode("utf-8")
    if len(encoded) <= _ICS_LINE_LIMIT:
        return [line]

    folded: List[str] = []
    current = ""
    limit = _ICS_LINE_LIMIT
    for char in line:
        if len((current + char).encode("utf-8")) > limit:
            folded.append(current)
            current = " "
            limit = _ICS_LINE_LIMIT
        current += char
    folded.append(current)
    return folded


def ics_filename(slot: DaySlot, event: EventConfig) -> str:
    stem = "".join(ch if ch.isalnum() else "-" for ch in f"{event.name} {slot.role}".lower())
    return "-".join(part for part in stem.split("-") if part) + ".ics"


def ics_document(
    slot: DaySlot,
    event: EventConfig,
    *,
    uid: Optional[str] = None,
    stamp: Optional[datetime] = None,
) -> str:
    """Render an iCalendar file with a single event for ``slot``."""

    stamp = (stamp or datetime.now(timezone.utc)).astimezone(timezone.utc)
    uid = uid or f"{_compact(slot.start)}-{slot.key}@volunteer-signup"
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//Volunteer Signup//EN",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        "BEGIN:VEVENT",
        f"UID:{uid}",
        f"DTSTAMP:{stamp:%Y%m%dT%H%M%SZ}",
        f"DTSTART:{_compact(slot.start)}",
        f"DTEND:{_compact(slot.end)}",
        f"SUMMARY:{_escape_text(slot.calendar_title)}",
        f"LOCATION:{_escape_text(event.location)}",
        f"DESCRIPTION:{_escape_text(slot.calendar_details)}",
        "END:VEVENT",
        "END:VCALENDAR",
    ]
    folded: List[str] = []
    for line in lines:
        folded.extend(_fold(line))
    return "\r\n".join(folded) + "\r\n"


__all__ = [
    "first_name",
    "google_calendar_url",
    "ics_document",
    "ics_filename",
    "maps_url",
    "reminder_mailto",
]
