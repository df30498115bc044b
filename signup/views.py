"""Page routing for the single-page sign-up flow."""

from __future__ import annotations

from enum import Enum
from typing import Dict, Tuple


class View(str, Enum):
    """The page a visitor currently sees."""

    SIGNUP = "signup"
    CONFIRMED = "confirmed"
    ADMIN = "admin"


class ViewEvent(str, Enum):
    SUBMITTED = "submitted"
    SIGN_UP_ANOTHER = "sign_up_another"
    ADMIN_UNLOCKED = "admin_unlocked"
    BACK = "back"


_TRANSITIONS: Dict[Tuple[View, ViewEvent], View] = {
    (View.SIGNUP, ViewEvent.SUBMITTED): View.CONFIRMED,
    (View.CONFIRMED, ViewEvent.SIGN_UP_ANOTHER): View.SIGNUP,
    (View.SIGNUP, ViewEvent.ADMIN_UNLOCKED): View.ADMIN,
    (View.ADMIN, ViewEvent.BACK): View.SIGNUP,
}


def transition(current: View, event: ViewEvent) -> View:
    """Return the view reached from ``current`` on ``event``.

    Events that do not apply to the current view leave it unchanged.
    """

    return _TRANSITIONS.get((current, event), current)


def parse_view(value: object) -> View:
    try:
        return View(str(value))
    except ValueError:
        return View.SIGNUP


def submit_label(selected_count: int) -> str:
    if selected_count <= 0:
        return "Select a Day Above"
    if selected_count == 1:
        return "Sign Up to Volunteer ⚡"
    return "Sign Up for Both Days"


__all__ = ["View", "ViewEvent", "parse_view", "submit_label", "transition"]
