"""Volunteer sign-up service for a fixed two-day event."""

from __future__ import annotations

from typing import Any

from .records import (
    FirebaseRecordStore,
    MemoryRecordStore,
    RecordStore,
    RecordStoreError,
    SQLiteRecordStore,
)
from .store import SignupStore


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the sign-up web application."""

    from .application import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "FirebaseRecordStore",
    "MemoryRecordStore",
    "RecordStore",
    "RecordStoreError",
    "SQLiteRecordStore",
    "SignupStore",
    "create_app",
]
