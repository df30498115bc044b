"""Application factory for the volunteer sign-up service."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI
from starlette.middleware.sessions import SessionMiddleware

from .config import EventConfig, load_event_config, resolve_config_path
from .records import RecordStore
from .security import AdminGate
from .settings import Settings, build_record_store, load_settings
from .store import SignupStore
from .web import register_ui_routes

logger = logging.getLogger("signup.application")

SESSION_COOKIE_NAME = "signup_session"


def create_app(
    *,
    settings: Optional[Settings] = None,
    records: Optional[RecordStore] = None,
    event: Optional[EventConfig] = None,
    session_secret: Optional[str] = None,
    admin_code: Optional[str] = None,
) -> FastAPI:
    """Create the sign-up web application.

    Explicit arguments take precedence over values read from ``settings``,
    which in turn default to the process environment.
    """

    settings = settings or load_settings()

    session_secret = session_secret or settings.session_secret
    if not session_secret:
        raise RuntimeError("SIGNUP_SESSION_SECRET must be configured to serve the sign-up page")

    if event is None:
        event = load_event_config(resolve_config_path(settings.event_config))
    if records is None:
        records = build_record_store(settings)

    gate = AdminGate(admin_code if admin_code is not None else settings.admin_code)
    if not gate.enabled:
        logger.warning("SIGNUP_ADMIN_CODE is not set; the admin view is unavailable.")

    signups = SignupStore(records, capacity=settings.capacity)
    signups.initialize()

    app = FastAPI(
        title=f"{event.name} Volunteer Sign Up",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.signups = signups
    app.state.records = records
    app.state.event = event

    if not settings.secure_cookies:
        logger.warning(
            "Session cookies are not marked as secure. Only disable secure cookies for"
            " local development."
        )
    app.add_middleware(
        SessionMiddleware,
        secret_key=session_secret,
        session_cookie=SESSION_COOKIE_NAME,
        https_only=settings.secure_cookies,
        same_site="lax",
        max_age=60 * 60 * 24,
    )

    register_ui_routes(app, signups, event, gate=gate)
    return app


__all__ = ["create_app"]
