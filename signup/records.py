"""Persistence of the shared sign-up record as one opaque JSON value.

Every backend reads and writes the whole record at a single fixed key. There
is no partial update and no version check, so concurrent writers follow a
last-write-wins policy.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

import httpx

from .models import SignupRecord, copy_record, record_from_json, record_to_json

logger = logging.getLogger("signup.records")

DEFAULT_RECORD_KEY = "elitecore-cup-signups-v3"


class RecordStoreError(RuntimeError):
    """Raised when the backing store cannot be reached or rejects a request."""


@dataclass(frozen=True)
class Found:
    record: SignupRecord


@dataclass(frozen=True)
class NotFound:
    pass


@dataclass(frozen=True)
class LoadFailed:
    reason: str


LoadResult = Union[Found, NotFound, LoadFailed]


def _normalize_base_url(base_url: str) -> str:
    cleaned = (base_url or "").strip()
    if not cleaned:
        raise ValueError("Database URL must not be empty")
    return cleaned.rstrip("/")


def _normalize_key(key: str) -> str:
    cleaned = (key or "").strip().strip("/")
    if not cleaned:
        raise ValueError("Record key must not be empty")
    return cleaned


class RecordStore:
    """Load and overwrite the sign-up record stored at ``key``."""

    def __init__(self, key: str = DEFAULT_RECORD_KEY) -> None:
        self._key = _normalize_key(key)

    @property
    def key(self) -> str:
        return self._key

    def load(self) -> LoadResult:
        try:
            payload = self._read()
        except RecordStoreError as exc:
            logger.warning("Loading record %s failed: %s", self._key, exc)
            return LoadFailed(str(exc))
        if payload is None:
            return NotFound()
        return Found(record_from_json(payload))

    def save(self, record: SignupRecord) -> None:
        self._write(record_to_json(record))
        logger.debug("Saved record %s", self._key)

    def _read(self) -> Optional[Any]:
        raise NotImplementedError

    def _write(self, payload: Dict[str, Any]) -> None:
        raise NotImplementedError


class FirebaseRecordStore(RecordStore):
    """Record store backed by the Firebase Realtime Database REST API."""

    def __init__(
        self,
        database_url: str,
        key: str = DEFAULT_RECORD_KEY,
        *,
        auth_token: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        super().__init__(key)
        self._base_url = _normalize_base_url(database_url)
        self._auth_token = (auth_token or "").strip() or None
        self._client = httpx.Client(timeout=timeout, transport=transport)

    @property
    def url(self) -> str:
        return f"{self._base_url}/{self.key}.json"

    def close(self) -> None:
        self._client.close()

    def _params(self) -> Dict[str, str]:
        return {"auth": self._auth_token} if self._auth_token else {}

    def _request(self, method: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._client.request(method, self.url, params=self._params(), **kwargs)
        except httpx.RequestError as exc:
            raise RecordStoreError(f"Failed to contact record store: {exc}") from exc

        if response.status_code >= 400:
            message = f"Record store request failed with status {response.status_code}"
            try:
                parsed = response.json()
            except ValueError:
                parsed = None
            if isinstance(parsed, dict) and isinstance(parsed.get("error"), str):
                message = f"{message}: {parsed['error']}"
            if response.status_code in (401, 403):
                raise RecordStoreError("The record store denied access to the sign-up record")
            raise RecordStoreError(message)
        return response

    def _read(self) -> Optional[Any]:
        response = self._request("GET")
        try:
            return response.json()
        except ValueError as exc:
            raise RecordStoreError("Record store returned an invalid response") from exc

    def _write(self, payload: Dict[str, Any]) -> None:
        self._request("PUT", json=payload)


class SQLiteRecordStore(RecordStore):
    """Keep the record in a local SQLite database."""

    def __init__(self, path: Path, key: str = DEFAULT_RECORD_KEY) -> None:
        super().__init__(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def initialize(self) -> None:
        """Create the records table if it does not already exist."""

        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS records (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )

    def _read(self) -> Optional[Any]:
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT value FROM records WHERE key = ?", (self.key,)
                ).fetchone()
        except sqlite3.OperationalError as exc:
            if "no such table" in str(exc):
                return None
            raise RecordStoreError(f"Failed to read record: {exc}") from exc
        except sqlite3.Error as exc:
            raise RecordStoreError(f"Failed to read record: {exc}") from exc

        if row is None:
            return None
        try:
            return json.loads(row["value"])
        except ValueError as exc:
            raise RecordStoreError("Stored record is not valid JSON") from exc

    def _write(self, payload: Dict[str, Any]) -> None:
        value = json.dumps(payload, ensure_ascii=False)
        updated_at = datetime.now(timezone.utc).isoformat()
        try:
            self.initialize()
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO records (key, value, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                    """,
                    (self.key, value, updated_at),
                )
        except sqlite3.Error as exc:
            raise RecordStoreError(f"Failed to write record: {exc}") from exc


class MemoryRecordStore(RecordStore):
    """In-process record store used for development runs and tests."""

    def __init__(
        self,
        key: str = DEFAULT_RECORD_KEY,
        *,
        payload: Optional[Dict[str, Any]] = None,
        fail_loads: bool = False,
        fail_saves: bool = False,
    ) -> None:
        super().__init__(key)
        self.payload = payload
        self.fail_loads = fail_loads
        self.fail_saves = fail_saves
        self.saves = 0

    @classmethod
    def seeded(cls, record: SignupRecord, **kwargs: Any) -> "MemoryRecordStore":
        return cls(payload=record_to_json(copy_record(record)), **kwargs)

    def _read(self) -> Optional[Any]:
        if self.fail_loads:
            raise RecordStoreError("Record store is unavailable")
        if self.payload is None:
            return None
        return json.loads(json.dumps(self.payload))

    def _write(self, payload: Dict[str, Any]) -> None:
        if self.fail_saves:
            raise RecordStoreError("Record store is unavailable")
        self.payload = json.loads(json.dumps(payload))
        self.saves += 1


__all__ = [
    "DEFAULT_RECORD_KEY",
    "Found",
    "FirebaseRecordStore",
    "LoadFailed",
    "LoadResult",
    "MemoryRecordStore",
    "NotFound",
    "RecordStore",
    "RecordStoreError",
    "SQLiteRecordStore",
]
