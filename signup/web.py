"""Web interface for the volunteer sign-up page."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import anyio
from fastapi import APIRouter, FastAPI, Form, HTTPException, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel

from .calendar import (
    first_name,
    google_calendar_url,
    ics_document,
    ics_filename,
    maps_url,
    reminder_mailto,
)
from .config import DaySlot, EventConfig
from .models import DAY_KEYS, VolunteerEntry
from .security import AdminGate
from .store import SignupStore, ValidationFailure
from .views import View, ViewEvent, parse_view, submit_label, transition

logger = logging.getLogger("signup.web")

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
STATIC_DIR = Path(__file__).resolve().parent / "static"


@dataclass(frozen=True)
class DayCard:
    """Presentation details for one selectable day."""

    slot: DaySlot
    count: int
    capacity: int
    selected: bool

    @property
    def full(self) -> bool:
        return self.count >= self.capacity

    @property
    def disabled(self) -> bool:
        return self.full and not self.selected

    @property
    def percent(self) -> int:
        return min(round(self.count / self.capacity * 100), 100)


@dataclass(frozen=True)
class AdminDay:
    slot: DaySlot
    entries: List[VolunteerEntry]
    capacity: int


class DayAvailability(BaseModel):
    day: str
    label: str
    count: int
    capacity: int
    remaining: int
    full: bool


class AvailabilityResponse(BaseModel):
    days: List[DayAvailability]


def _session_days(request: Request, key: str) -> List[str]:
    raw = request.session.get(key)
    if not isinstance(raw, list):
        return []
    return [day for day in raw if day in DAY_KEYS]


def _current_view(request: Request) -> View:
    return parse_view(request.session.get("view"))


def _set_view(request: Request, event: ViewEvent) -> View:
    view = transition(_current_view(request), event)
    request.session["view"] = view.value
    return view


def _reset_form(request: Request) -> None:
    for key in ("selected_days", "submitted_days", "submitted_name", "name_draft", "name_error"):
        request.session.pop(key, None)


def _redirect_home(request: Request) -> RedirectResponse:
    return RedirectResponse(request.url_for("ui_home"), status_code=status.HTTP_303_SEE_OTHER)


def register_ui_routes(
    app: FastAPI,
    signups: SignupStore,
    event: EventConfig,
    *,
    gate: AdminGate,
    templates: Optional[Jinja2Templates] = None,
) -> None:
    """Expose the sign-up pages on the provided FastAPI app."""

    templates = templates or Jinja2Templates(directory=str(TEMPLATE_DIR))
    if STATIC_DIR.exists():
        app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

    router = APIRouter(include_in_schema=False)

    def _slot(day: str) -> DaySlot:
        if day not in DAY_KEYS:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown event day")
        return event.day(day)

    def _signup_context(request: Request) -> Dict[str, object]:
        selected = _session_days(request, "selected_days")
        cards = [
            DayCard(
                slot=slot,
                count=signups.count(slot.key),
                capacity=signups.capacity,
                selected=slot.key in selected,
            )
            for slot in event.slots()
        ]
        return {
            "cards": cards,
            "name": request.session.get("name_draft", ""),
            "name_error": bool(request.session.get("name_error")),
            "submit_label": submit_label(len(selected)),
            "can_submit": bool(selected),
            "admin_prompt": bool(request.session.get("admin_prompt")),
            "admin_enabled": gate.enabled,
        }

    def _confirmed_context(request: Request) -> Dict[str, object]:
        name = str(request.session.get("submitted_name", ""))
        slots = event.slots(_session_days(request, "submitted_days"))
        return {
            "first_name": first_name(name),
            "slots": slots,
            "calendar_urls": {slot.key: google_calendar_url(slot, event) for slot in slots},
            "maps_url": maps_url(event),
            "mailto_url": reminder_mailto(name, slots, event),
        }

    def _admin_context(request: Request) -> Dict[str, object]:
        return {
            "days": [
                AdminDay(slot=slot, entries=signups.entries(slot.key), capacity=signups.capacity)
                for slot in event.slots()
            ],
        }

    @router.get("/", response_class=HTMLResponse, name="ui_home")
    async def homepage(request: Request):
        view = _current_view(request)
        context: Dict[str, object] = {"event": event, "view": view.value}
        if view is View.ADMIN:
            context.update(_admin_context(request))
            template = "admin.html"
        elif view is View.CONFIRMED:
            context.update(_confirmed_context(request))
            template = "confirmed.html"
        else:
            context.update(_signup_context(request))
            template = "signup.html"
        return templates.TemplateResponse(request, template, context)

    @router.post("/days/toggle", name="ui_toggle_day")
    async def toggle_day(request: Request, day: str = Form(...), name: str = Form("")):
        if _current_view(request) is not View.SIGNUP:
            return _redirect_home(request)
        _slot(day)
        selected = signups.select_days(_session_days(request, "selected_days"), [day])
        request.session["selected_days"] = selected
        request.session["name_draft"] = name
        request.session["name_error"] = False
        return _redirect_home(request)

    @router.post("/signup", name="ui_submit")
    async def submit(request: Request, name: str = Form("")):
        if _current_view(request) is not View.SIGNUP:
            return _redirect_home(request)

        result = await anyio.to_thread.run_sync(
            signups.submit, name, _session_days(request, "selected_days")
        )
        request.session["name_draft"] = name
        if not result.accepted:
            request.session["name_error"] = ValidationFailure.NAME_REQUIRED in result.failures
            return _redirect_home(request)

        if not result.persisted:
            logger.warning("Confirming sign-up for %s although the record was not saved", name.strip())
        request.session["name_error"] = False
        request.session["submitted_name"] = name.strip()
        request.session["submitted_days"] = list(result.added)
        _set_view(request, ViewEvent.SUBMITTED)
        return _redirect_home(request)

    @router.post("/another", name="ui_sign_up_another")
    async def sign_up_another(request: Request):
        _set_view(request, ViewEvent.SIGN_UP_ANOTHER)
        _reset_form(request)
        return _redirect_home(request)

    @router.get("/calendar/{day}.ics", name="ui_calendar_file")
    async def calendar_file(day: str):
        slot = _slot(day)
        return Response(
            content=ics_document(slot, event),
            media_type="text/calendar; charset=utf-8",
            headers={"Content-Disposition": f'attachment; filename="{ics_filename(slot, event)}"'},
        )

    @router.post("/admin/prompt", name="ui_admin_prompt")
    async def admin_prompt(request: Request):
        request.session["admin_prompt"] = True
        return _redirect_home(request)

    @router.post("/admin/prompt/cancel", name="ui_admin_prompt_cancel")
    async def admin_prompt_cancel(request: Request):
        request.session["admin_prompt"] = False
        return _redirect_home(request)

    @router.post("/admin/unlock", name="ui_admin_unlock")
    async def admin_unlock(request: Request, code: str = Form("")):
        if gate.check(code):
            _set_view(request, ViewEvent.ADMIN_UNLOCKED)
            request.session["admin_prompt"] = False
        else:
            logger.info("Rejected admin passcode attempt")
        return _redirect_home(request)

    @router.post("/admin/back", name="ui_admin_back")
    async def admin_back(request: Request):
        _set_view(request, ViewEvent.BACK)
        return _redirect_home(request)

    @router.post("/admin/remove", name="ui_admin_remove")
    async def admin_remove(request: Request, day: str = Form(...), entry_id: str = Form(...)):
        if _current_view(request) is not View.ADMIN:
            return _redirect_home(request)
        _slot(day)
        await anyio.to_thread.run_sync(signups.remove_volunteer, day, entry_id)
        return _redirect_home(request)

    @router.post("/admin/clear", response_class=HTMLResponse, name="ui_admin_clear")
    async def admin_clear(request: Request, confirm: str = Form("")):
        if _current_view(request) is not View.ADMIN:
            return _redirect_home(request)
        if confirm.strip().lower() != "yes":
            total = sum(signups.occupancy().values())
            return templates.TemplateResponse(
                request,
                "confirm_clear.html",
                {"event": event, "view": View.ADMIN.value, "total": total},
            )
        await anyio.to_thread.run_sync(signups.clear_all)
        return _redirect_home(request)

    app.include_router(router)

    @app.get("/api/availability", response_model=AvailabilityResponse)
    async def availability() -> AvailabilityResponse:
        return AvailabilityResponse(
            days=[
                DayAvailability(
                    day=slot.key,
                    label=slot.label,
                    count=signups.count(slot.key),
                    capacity=signups.capacity,
                    remaining=signups.remaining(slot.key),
                    full=signups.is_full(slot.key),
                )
                for slot in event.slots()
            ]
        )

    @app.get("/healthz")
    async def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}


__all__ = ["register_ui_routes"]
