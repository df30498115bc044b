"""Environment-driven runtime settings."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .models import DEFAULT_CAPACITY
from .records import (
    DEFAULT_RECORD_KEY,
    FirebaseRecordStore,
    MemoryRecordStore,
    RecordStore,
    SQLiteRecordStore,
)

BACKENDS = ("firebase", "sqlite", "memory")


def _env_flag(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the local SQLite record store."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "signups.sqlite3").resolve(strict=False)


@dataclass(frozen=True)
class Settings:
    backend: str = "sqlite"
    record_key: str = DEFAULT_RECORD_KEY
    firebase_url: Optional[str] = None
    firebase_token: Optional[str] = None
    remote_timeout: float = 10.0
    database_path: Path = resolve_database_path(None)
    admin_code: Optional[str] = None
    session_secret: Optional[str] = None
    secure_cookies: bool = True
    capacity: int = DEFAULT_CAPACITY
    event_config: Optional[str] = None


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if environ is None else environ

    backend = env.get("SIGNUP_RECORD_BACKEND", "sqlite").strip().lower() or "sqlite"
    if backend not in BACKENDS:
        raise ValueError(
            f"SIGNUP_RECORD_BACKEND must be one of {', '.join(BACKENDS)}, not {backend!r}"
        )

    try:
        capacity = int(env.get("SIGNUP_CAPACITY", str(DEFAULT_CAPACITY)))
        timeout = float(env.get("SIGNUP_REMOTE_TIMEOUT", "10"))
    except ValueError as exc:
        raise ValueError(f"Invalid numeric setting: {exc}") from exc

    return Settings(
        backend=backend,
        record_key=env.get("SIGNUP_RECORD_KEY", DEFAULT_RECORD_KEY).strip() or DEFAULT_RECORD_KEY,
        firebase_url=env.get("FIREBASE_DATABASE_URL") or None,
        firebase_token=env.get("FIREBASE_AUTH_TOKEN") or None,
        remote_timeout=timeout,
        database_path=resolve_database_path(env.get("SIGNUP_DB_PATH")),
        admin_code=env.get("SIGNUP_ADMIN_CODE") or None,
        session_secret=env.get("SIGNUP_SESSION_SECRET") or None,
        secure_cookies=_env_flag(env.get("SIGNUP_SESSION_SECURE"), True),
        capacity=capacity,
        event_config=env.get("SIGNUP_EVENT_CONFIG") or None,
    )


def build_record_store(settings: Settings) -> RecordStore:
    """Instantiate the record store selected by ``settings.backend``."""

    if settings.backend == "firebase":
        if not settings.firebase_url:
            raise ValueError("FIREBASE_DATABASE_URL must be set to use the firebase backend")
        return FirebaseRecordStore(
            settings.firebase_url,
            settings.record_key,
            auth_token=settings.firebase_token,
            timeout=settings.remote_timeout,
        )
    if settings.backend == "memory":
        return MemoryRecordStore(settings.record_key)
    store = SQLiteRecordStore(settings.database_path, settings.record_key)
    store.initialize()
    return store


__all__ = ["BACKENDS", "Settings", "build_record_store", "load_settings", "resolve_database_path"]
